"""Locate module fragments across the three precedence roots."""

from __future__ import annotations

import typing as typ

from cms_deploy._constants import FRAGMENT_SUFFIX, MODULE_NAME_SEPARATOR
from cms_deploy.config import ModuleLayout, ModuleLocation

if typ.TYPE_CHECKING:
    from pathlib import Path


def module_directory_name(reference: str) -> str:
    """Return the fragment directory name for a module reference.

    Each separator-delimited segment gets its first letter upper-cased and the
    segments are joined back together without a separator.

    Examples
    --------
    >>> module_directory_name("navigation_bar")
    'NavigationBar'
    >>> module_directory_name("footer")
    'Footer'
    """
    segments = [segment for segment in reference.split(MODULE_NAME_SEPARATOR) if segment]
    return "".join(segment[:1].upper() + segment[1:] for segment in segments)


class ModuleResolver:
    """Resolve module references to fragment files under a module area.

    Roots are probed in :class:`ModuleLocation` order (primary, secondary,
    shared) and the first one holding ``<Dir>/<name>.html`` wins. Resolution
    only stats the filesystem, so independent references may be resolved
    concurrently.
    """

    def __init__(self, modules_root: Path, layout: ModuleLayout | None = None) -> None:
        self.modules_root = modules_root
        self.layout = layout or ModuleLayout()

    def candidates(self, reference: str) -> list[tuple[ModuleLocation, Path]]:
        """Return every candidate fragment path in precedence order."""
        directory = module_directory_name(reference)
        filename = f"{reference}{FRAGMENT_SUFFIX}"
        return [
            (
                location,
                self.modules_root / self.layout.directory_for(location) / directory / filename,
            )
            for location in ModuleLocation
        ]

    def locate(self, reference: str) -> tuple[ModuleLocation, Path] | None:
        """Return the winning location and fragment path, or None if absent."""
        for location, path in self.candidates(reference):
            if path.is_file():
                return location, path
        return None

    def resolve(self, reference: str) -> Path | None:
        """Return the highest-precedence fragment for ``reference``.

        ``None`` means the module has no fragment for this site; callers skip
        it rather than failing.
        """
        match = self.locate(reference)
        return match[1] if match else None


__all__ = ["ModuleResolver", "module_directory_name"]
