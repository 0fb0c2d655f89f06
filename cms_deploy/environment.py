"""Write the target environment's settings into the published script bundle.

The site reads its remote-service endpoints and keys from a single script in
the output tree. That script ships with one placeholder token (for example
``'%ENVIRONMENT%'``) which this module swaps for the target payload rendered
as a JavaScript object literal::

    {
    	apiKey: 'live-key',
    	authDomain: 'example.firebaseapp.com'
    }

The substitution is a single literal replacement. A file without the token,
or with more than one, is rejected so a deploy can never publish a bundle
still wired to the wrong environment.
"""

from __future__ import annotations

import collections.abc as cabc
import logging
import re
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config import DeployTarget, EnvironmentSettings

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class EnvironmentConfigError(RuntimeError):
    """Raised when the environment file cannot be configured unambiguously."""


class PlaceholderNotFoundError(EnvironmentConfigError):
    """Raised when the environment file lacks the placeholder token."""


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def _format_key(key: object) -> str:
    text = str(key)
    return text if _IDENTIFIER.match(text) else _quote(text)


def stringify_object(value: typ.Any, *, indent: str = "\t", _level: int = 0) -> str:
    """Render ``value`` as a single-quoted JavaScript literal.

    Examples
    --------
    >>> stringify_object({"apiKey": "abc", "port": 8080})
    "{\\n\\tapiKey: 'abc',\\n\\tport: 8080\\n}"
    >>> stringify_object(["a", None, True])
    "[\\n\\t'a',\\n\\tnull,\\n\\ttrue\\n]"
    """
    inner = indent * (_level + 1)
    outer = indent * _level
    match value:
        case bool():
            return "true" if value else "false"
        case None:
            return "null"
        case int() | float():
            return str(value)
        case str():
            return _quote(value)
        case cabc.Mapping():
            if not value:
                return "{}"
            items = [
                f"{inner}{_format_key(key)}: "
                f"{stringify_object(item, indent=indent, _level=_level + 1)}"
                for key, item in value.items()
            ]
            return "{\n" + ",\n".join(items) + "\n" + outer + "}"
        case list() | tuple():
            if not value:
                return "[]"
            items = [
                f"{inner}{stringify_object(item, indent=indent, _level=_level + 1)}"
                for item in value
            ]
            return "[\n" + ",\n".join(items) + "\n" + outer + "]"
        case _:
            return _quote(str(value))


class EnvironmentConfigurator:
    """Replace the environment placeholder in one output-tree file."""

    def __init__(self, target_file: Path, settings: EnvironmentSettings) -> None:
        self.target_file = target_file
        self.settings = settings

    def render(self, text: str, target: DeployTarget) -> str:
        """Return ``text`` with the placeholder replaced for ``target``.

        Raises
        ------
        PlaceholderNotFoundError
            If the placeholder token does not occur in ``text``.
        EnvironmentConfigError
            If the placeholder token occurs more than once.
        """
        token = self.settings.placeholder
        occurrences = text.count(token)
        if occurrences == 0:
            msg = f"Placeholder {token!r} not found in {self.target_file}"
            raise PlaceholderNotFoundError(msg)
        if occurrences > 1:
            msg = (
                f"Placeholder {token!r} occurs {occurrences} times in "
                f"{self.target_file}; expected exactly one"
            )
            raise EnvironmentConfigError(msg)
        payload = stringify_object(self.settings.payload_for(target))
        return text.replace(token, payload, 1)

    def apply(self, target: DeployTarget) -> Path:
        """Configure the target file for ``target`` and return its path."""
        text = self.target_file.read_text(encoding="utf-8")
        self.target_file.write_text(self.render(text, target), encoding="utf-8")
        logger.info("configured %s for %s", self.target_file, target)
        return self.target_file


__all__ = [
    "EnvironmentConfigError",
    "EnvironmentConfigurator",
    "PlaceholderNotFoundError",
    "stringify_object",
]
