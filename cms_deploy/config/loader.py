"""Load build configuration YAML and environment settings TOML."""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import tomlkit
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .helpers import (
    DEFAULT_SCRIPT_COMMAND,
    DEFAULT_STYLE_COMMAND,
    _as_mapping,
    _as_str_list,
    _build_compile_settings,
    _build_copy_restrictions,
    _build_identity_settings,
    _build_module_layout,
    _build_page_declaration,
    _optional_path,
)
from .models import (
    BuildConfig,
    BuildConfigError,
    DeployTarget,
    EnvironmentSettings,
    PageDeclaration,
)

DEFAULT_ENVIRONMENT_SETTINGS_PATH = Path(
    os.getenv(
        "CMS_DEPLOY_ENVIRONMENT_FILE",
        Path.home() / ".config" / "cms-deploy" / "environment.toml",
    )
)


def _reject_shared_templates(
    pages: typ.Iterable[PageDeclaration], pages_dir: Path
) -> None:
    """Raise when two page declarations would rewrite the same template."""
    owners: dict[Path, str] = {}
    for page in pages:
        template = page.template_path(pages_dir)
        if template in owners:
            msg = (
                f"Pages '{owners[template]}' and '{page.identifier}' both use "
                f"template '{template}'."
            )
            raise BuildConfigError(msg)
        owners[template] = page.identifier


def load_build_config(path: Path) -> BuildConfig:
    """Load the YAML configuration describing the build layout and pages.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML build configuration file (for example,
        ``config/deploy.yaml``).

    Returns
    -------
    BuildConfig
        Parsed build configuration, including source/output roots, the module
        area layout, page declarations, compiler settings, and identity check
        settings.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    BuildConfigError
        If the file is not valid YAML, the top-level structure is not a
        mapping, or required sections or fields are missing or invalid (for
        example, no pages are declared, no environment file is set, or two
        pages share a template).

    Examples
    --------
    >>> from pathlib import Path
    >>> from cms_deploy.config import load_build_config
    >>> config = load_build_config(Path("config/deploy.yaml"))  # doctest: +SKIP
    >>> config.get_page("index").modules  # doctest: +SKIP
    ('navigation_bar', 'footer')
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle) or {}
    except YAMLError as exc:
        msg = f"Unable to parse build configuration YAML at {path}"
        raise BuildConfigError(msg) from exc
    if not isinstance(loaded, dict):
        msg = f"Top-level YAML structure in {path} must be a mapping."
        raise BuildConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    paths = _as_mapping(raw.get("paths"), field="paths")
    source_root = _optional_path(paths.get("source"))
    output_root = _optional_path(paths.get("output"))
    if source_root is None or output_root is None:
        msg = "Both 'paths.source' and 'paths.output' must be configured."
        raise BuildConfigError(msg)
    if source_root.resolve() == output_root.resolve():
        msg = "'paths.output' must differ from 'paths.source'."
        raise BuildConfigError(msg)

    pages_raw = _as_mapping(raw.get("pages"), field="pages")
    if not pages_raw:
        msg = "No pages declared in build configuration."
        raise BuildConfigError(msg)
    pages: dict[str, PageDeclaration] = {
        str(key): _build_page_declaration(str(key), payload)
        for key, payload in pages_raw.items()
    }
    pages_dir = _optional_path(paths.get("pages")) or Path()
    _reject_shared_templates(pages.values(), pages_dir)

    environment_file = _optional_path(paths.get("environment_file"))
    if environment_file is None:
        msg = "'paths.environment_file' must be configured."
        raise BuildConfigError(msg)

    compile_raw = _as_mapping(raw.get("compile"), field="compile")
    styles = _build_compile_settings(
        _as_mapping(compile_raw.get("styles"), field="compile.styles"),
        field="compile.styles",
        default_command=DEFAULT_STYLE_COMMAND,
        default_patterns=["**/*.scss"],
        default_suffix=".css",
        default_skip_partials=True,
    )
    scripts = _build_compile_settings(
        _as_mapping(compile_raw.get("scripts"), field="compile.scripts"),
        field="compile.scripts",
        default_command=DEFAULT_SCRIPT_COMMAND,
        default_patterns=["**/*.js"],
        default_suffix=None,
        default_skip_partials=False,
    )

    copy_raw = _as_mapping(raw.get("copy"), field="copy")
    publish_raw = _as_mapping(raw.get("publish"), field="publish")
    exclude = publish_raw.get("exclude", ["**/*.scss"])

    return BuildConfig(
        source_root=source_root,
        output_root=output_root,
        pages=pages,
        pages_dir=pages_dir,
        modules=_build_module_layout(_as_mapping(raw.get("modules"), field="modules")),
        copy_restrictions=_build_copy_restrictions(
            _as_mapping(copy_raw.get("restrict"), field="copy.restrict")
        ),
        publish_exclude=_as_str_list(exclude, field="publish.exclude"),
        styles=styles,
        scripts=scripts,
        identity=_build_identity_settings(
            _as_mapping(raw.get("identity"), field="identity")
        ),
        environment_file=environment_file,
        environment_settings=_optional_path(paths.get("environment_settings")),
    )


def load_environment_settings(
    path: Path = DEFAULT_ENVIRONMENT_SETTINGS_PATH,
) -> EnvironmentSettings:
    """Load the placeholder token and per-target payloads from TOML.

    The file carries a top-level ``placeholder`` string and one table per
    deploy target::

        placeholder = "'%ENVIRONMENT%'"

        [development]
        apiKey = "dev-key"

        [production]
        apiKey = "live-key"
    """
    if not path.exists():
        msg = f"Environment settings file not found: {path}"
        raise FileNotFoundError(msg)
    try:
        document = tomlkit.parse(path.read_text(encoding="utf-8"))
    except tomlkit.exceptions.ParseError as exc:
        msg = f"Unable to parse environment settings TOML at {path}"
        raise BuildConfigError(msg) from exc
    data: dict[str, typ.Any] = document.unwrap()

    placeholder = data.get("placeholder")
    if not isinstance(placeholder, str) or not placeholder:
        msg = f"Missing 'placeholder' token in {path}"
        raise BuildConfigError(msg)

    payloads: dict[DeployTarget, dict[str, typ.Any]] = {}
    for target in DeployTarget:
        table = data.get(target.value)
        if table is None:
            continue
        if not isinstance(table, dict):
            msg = f"'[{target.value}]' in {path} must be a table."
            raise BuildConfigError(msg)
        payloads[target] = table
    return EnvironmentSettings(placeholder=placeholder, payloads=payloads)


__all__ = [
    "DEFAULT_ENVIRONMENT_SETTINGS_PATH",
    "load_build_config",
    "load_environment_settings",
]
