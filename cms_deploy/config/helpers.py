"""Utility helpers shared by the cms-deploy configuration loader."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from .models import (
    BuildConfigError,
    CompileSettings,
    IdentitySettings,
    ModuleLayout,
    PageDeclaration,
)

DEFAULT_STYLE_COMMAND = ["sass", "--no-source-map", "{source}", "{target}"]
DEFAULT_SCRIPT_COMMAND = ["npx", "babel", "{source}", "--out-file", "{target}"]


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_path(value: object | None) -> Path | None:
    """Return a Path for non-empty values, otherwise None."""
    text = _optional_str(value)
    return Path(text) if text else None


def _as_str_list(value: object | None, *, field: str) -> list[str]:
    """Normalize a scalar or sequence into a list of non-empty strings."""
    match value:
        case None:
            return []
        case str() as text:
            return [text] if text.strip() else []
        case list() | tuple():
            normalized: list[str] = []
            for item in value:
                text = str(item).strip()
                if text:
                    normalized.append(text)
            return normalized
        case _:
            msg = f"'{field}' must be a string or a list of strings."
            raise BuildConfigError(msg)


def _as_mapping(value: object | None, *, field: str) -> typ.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping, treating None as empty."""
    if value is None:
        return {}
    if not isinstance(value, typ.Mapping):
        msg = f"'{field}' must be a mapping."
        raise BuildConfigError(msg)
    return value


def _build_module_layout(payload: typ.Mapping[str, typ.Any]) -> ModuleLayout:
    """Build the module area layout, keeping defaults for omitted roots."""
    base = ModuleLayout()
    locations = _as_mapping(payload.get("locations"), field="modules.locations")
    return ModuleLayout(
        root=_optional_path(payload.get("root")) or base.root,
        primary=_optional_str(locations.get("primary")) or base.primary,
        secondary=_optional_str(locations.get("secondary")) or base.secondary,
        shared=_optional_str(locations.get("shared")) or base.shared,
    )


def _build_compile_settings(
    payload: typ.Mapping[str, typ.Any],
    *,
    field: str,
    default_command: list[str],
    default_patterns: list[str],
    default_suffix: str | None,
    default_skip_partials: bool,
) -> CompileSettings:
    """Build compiler settings from a ``compile.<family>`` mapping."""
    command = payload.get("command", default_command)
    patterns = payload.get("patterns", default_patterns)
    target_suffix = payload.get("target_suffix", default_suffix)
    return CompileSettings(
        command=_as_str_list(command, field=f"{field}.command"),
        patterns=_as_str_list(patterns, field=f"{field}.patterns"),
        target_suffix=_optional_str(target_suffix),
        skip_partials=bool(payload.get("skip_partials", default_skip_partials)),
    )


def _build_identity_settings(payload: typ.Mapping[str, typ.Any]) -> IdentitySettings:
    """Build identity check settings, keeping the stock markers by default."""
    base = IdentitySettings()
    command = _as_str_list(payload.get("command"), field="identity.command")
    timeout = payload.get("timeout")
    return IdentitySettings(
        command=command or base.command,
        report_marker=_optional_str(payload.get("report_marker")) or base.report_marker,
        production_marker=_optional_str(payload.get("production_marker"))
        or base.production_marker,
        timeout=float(timeout) if timeout is not None else None,
    )


def _build_copy_restrictions(
    payload: typ.Mapping[str, typ.Any],
) -> dict[str, tuple[str, ...]]:
    """Map source subtrees to the file suffixes allowed through the copy."""
    restrictions: dict[str, tuple[str, ...]] = {}
    for subtree, suffixes in payload.items():
        allowed = _as_str_list(suffixes, field=f"copy.restrict.{subtree}")
        restrictions[str(subtree).strip("/")] = tuple(
            suffix if suffix.startswith(".") else f".{suffix}" for suffix in allowed
        )
    return restrictions


def _build_page_declaration(key: str, payload: object) -> PageDeclaration:
    """Build a PageDeclaration from a module list or a mapping entry."""
    match payload:
        case None:
            return PageDeclaration(identifier=key)
        case list() | tuple():
            modules = _as_str_list(payload, field=f"pages.{key}")
            return PageDeclaration(identifier=key, modules=tuple(modules))
        case dict():
            modules = _as_str_list(payload.get("modules"), field=f"pages.{key}.modules")
            return PageDeclaration(
                identifier=key,
                modules=tuple(modules),
                template=_optional_path(payload.get("template")),
            )
        case _:
            msg = f"Page '{key}' must list its modules or be a mapping."
            raise BuildConfigError(msg)


__all__ = [
    "DEFAULT_SCRIPT_COMMAND",
    "DEFAULT_STYLE_COMMAND",
    "_as_mapping",
    "_as_str_list",
    "_build_compile_settings",
    "_build_copy_restrictions",
    "_build_identity_settings",
    "_build_module_layout",
    "_build_page_declaration",
    "_optional_path",
    "_optional_str",
]
