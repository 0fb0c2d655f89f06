"""Load and validate build configuration for cms-deploy runs.

This subpackage parses the project's ``deploy.yaml`` file into strongly typed
dataclasses (:class:`BuildConfig`, :class:`PageDeclaration`, etc.) and reads
the per-target environment payloads from a TOML settings file kept outside
the repository. The primary entry points are :func:`load_build_config` and
:func:`load_environment_settings`.

Examples
--------
>>> from pathlib import Path
>>> from cms_deploy.config import load_build_config
>>> build = load_build_config(Path("config/deploy.yaml"))  # doctest: +SKIP
>>> build.get_page("index").template_path(build.pages_root)  # doctest: +SKIP
PosixPath('Deploy/index.html')
"""

from .loader import (
    DEFAULT_ENVIRONMENT_SETTINGS_PATH,
    load_build_config,
    load_environment_settings,
)
from .models import (
    BuildConfig,
    BuildConfigError,
    CompileSettings,
    DeployTarget,
    EnvironmentSettings,
    IdentitySettings,
    ModuleLayout,
    ModuleLocation,
    PageDeclaration,
)

__all__ = [
    "DEFAULT_ENVIRONMENT_SETTINGS_PATH",
    "BuildConfig",
    "BuildConfigError",
    "CompileSettings",
    "DeployTarget",
    "EnvironmentSettings",
    "IdentitySettings",
    "ModuleLayout",
    "ModuleLocation",
    "PageDeclaration",
    "load_build_config",
    "load_environment_settings",
]
