"""Typed dataclasses describing cms-deploy build configuration structures."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ
from pathlib import Path

from .._constants import (
    DEFAULT_IDENTITY_COMMAND,
    PRODUCTION_MARKER,
    REPORT_MARKER,
)


class BuildConfigError(ValueError):
    """Raised when the build configuration is invalid or incomplete."""


class DeployTarget(enum.StrEnum):
    """Deployment direction selected by the operator."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ModuleLocation(enum.Enum):
    """Precedence roots searched for module fragments, highest first."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    SHARED = "shared"


@dc.dataclass(slots=True, frozen=True)
class PageDeclaration:
    """A page template and the modules spliced into it, in order."""

    identifier: str
    modules: tuple[str, ...] = ()
    template: Path | None = None

    def template_path(self, pages_root: Path) -> Path:
        """Return the template location for this page under ``pages_root``."""
        if self.template is not None:
            return pages_root / self.template
        return pages_root / f"{self.identifier}.html"


@dc.dataclass(slots=True)
class ModuleLayout:
    """Where module fragments live inside the source tree."""

    root: Path = Path("Modules")
    primary: str = "Primary"
    secondary: str = "Secondary"
    shared: str = "Shared"

    def directory_for(self, location: ModuleLocation) -> str:
        """Return the directory name configured for ``location``."""
        match location:
            case ModuleLocation.PRIMARY:
                return self.primary
            case ModuleLocation.SECONDARY:
                return self.secondary
            case ModuleLocation.SHARED:
                return self.shared
        msg = f"Unknown module location: {location!r}"  # pragma: no cover
        raise ValueError(msg)  # pragma: no cover


@dc.dataclass(slots=True)
class CompileSettings:
    """External compiler invocation for one family of output files.

    ``command`` is an argv template; ``{source}`` and ``{target}`` are
    substituted per matched file. When ``target_suffix`` is ``None`` the file
    is compiled in place.
    """

    command: list[str] = dc.field(default_factory=list)
    patterns: list[str] = dc.field(default_factory=list)
    target_suffix: str | None = None
    skip_partials: bool = False


@dc.dataclass(slots=True)
class IdentitySettings:
    """How the deployment identity is checked and recognised."""

    command: list[str] = dc.field(
        default_factory=lambda: list(DEFAULT_IDENTITY_COMMAND)
    )
    report_marker: str = REPORT_MARKER
    production_marker: str = PRODUCTION_MARKER
    timeout: float | None = None


@dc.dataclass(slots=True)
class EnvironmentSettings:
    """Placeholder token and per-target payloads for the environment file."""

    placeholder: str
    payloads: dict[DeployTarget, dict[str, typ.Any]]

    def payload_for(self, target: DeployTarget) -> dict[str, typ.Any]:
        """Return the configuration payload for ``target``."""
        try:
            return self.payloads[target]
        except KeyError as exc:
            msg = f"No environment configuration defined for '{target}'."
            raise BuildConfigError(msg) from exc


@dc.dataclass(slots=True)
class BuildConfig:
    """A fully resolved build definition sourced from YAML config."""

    source_root: Path
    output_root: Path
    pages: dict[str, PageDeclaration]
    pages_dir: Path = Path()
    modules: ModuleLayout = dc.field(default_factory=ModuleLayout)
    copy_restrictions: dict[str, tuple[str, ...]] = dc.field(default_factory=dict)
    publish_exclude: list[str] = dc.field(default_factory=lambda: ["**/*.scss"])
    styles: CompileSettings = dc.field(default_factory=CompileSettings)
    scripts: CompileSettings = dc.field(default_factory=CompileSettings)
    identity: IdentitySettings = dc.field(default_factory=IdentitySettings)
    environment_file: Path | None = None
    environment_settings: Path | None = None

    @property
    def pages_root(self) -> Path:
        """Directory in the output tree holding page templates."""
        return self.output_root / self.pages_dir

    @property
    def modules_root(self) -> Path:
        """Directory in the source tree holding the module precedence roots."""
        return self.source_root / self.modules.root

    def get_page(self, page_id: str) -> PageDeclaration:
        """Return the declaration for ``page_id``."""
        try:
            return self.pages[page_id]
        except KeyError as exc:
            available = ", ".join(sorted(self.pages))
            msg = f"Unknown page '{page_id}'. Known pages: {available}"
            raise KeyError(msg) from exc


__all__ = [
    "BuildConfig",
    "BuildConfigError",
    "CompileSettings",
    "DeployTarget",
    "EnvironmentSettings",
    "IdentitySettings",
    "ModuleLayout",
    "ModuleLocation",
    "PageDeclaration",
]
