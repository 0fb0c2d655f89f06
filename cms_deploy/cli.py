"""Cyclopts CLI entrypoint for building and deploying the site.

The ``cms-deploy`` console script defined here exposes the two deploy entry
points, ``cms-deploy development`` and ``cms-deploy production``, which check
the logged-in hosting identity and then rebuild the output tree for that
target. ``cms-deploy identity`` runs only the identity check, and
``cms-deploy resolve`` reports which fragment each module of a page resolves
to; neither touches the output tree.

Every option can also be supplied through a ``CMS_DEPLOY_*`` environment
variable (for example ``CMS_DEPLOY_CONFIG``).

Examples
--------
Deploy the development build using the default configuration:

>>> from cms_deploy.cli import main
>>> main()  # doctest: +SKIP

Check which fragments the index page would use:

>>> from cms_deploy.cli import app
>>> app(["resolve", "index"])  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .compilers import CompileError
from .config import (
    BuildConfigError,
    DeployTarget,
    load_build_config,
    load_environment_settings,
)
from .composer import ModuleResolver
from .environment import EnvironmentConfigError
from .identity import IdentityCheckError, IdentityGate
from .pipeline import PipelineOrchestrator, StageError

DEFAULT_CONFIG = Path("config/deploy.yaml")
EXIT_FAILURE = 1
EXIT_NOT_AUTHORIZED = 2

app = App(name="cms-deploy", config=cyclopts.config.Env("CMS_DEPLOY_", command=False))  # type: ignore[unknown-argument]

_HANDLED_ERRORS = (
    BuildConfigError,
    CompileError,
    EnvironmentConfigError,
    FileNotFoundError,
    IdentityCheckError,
    StageError,
)


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: BaseException) -> typ.NoReturn:
    print(f"error: {exc}", file=sys.stderr)
    raise SystemExit(EXIT_FAILURE) from exc


def _deploy(
    target: DeployTarget,
    *,
    config: Path,
    environment_settings: Path | None,
    verbose: bool,
) -> None:
    """Run the gated pipeline for ``target`` and report the outcome."""
    _configure_logging(verbose)
    try:
        build_config = load_build_config(config)
        environment = (
            load_environment_settings(environment_settings)
            if environment_settings
            else None
        )
        orchestrator = PipelineOrchestrator(build_config, environment=environment)
        result = asyncio.run(orchestrator.run(target))
    except _HANDLED_ERRORS as exc:
        _fail(exc)

    print(result.authorization.message)
    if not result.deployed:
        raise SystemExit(EXIT_NOT_AUTHORIZED)
    for page in result.context.composed:
        print(f"wrote {_format_path(page.path)}")
    if result.context.configured:
        print(f"configured {_format_path(result.context.configured)}")


@app.command(help="Deploy to development after confirming a non-production identity.")
def development(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to build config")
    ] = DEFAULT_CONFIG,
    environment_settings: typ.Annotated[
        Path | None,
        Parameter(help="Override the environment settings TOML"),
    ] = None,
    verbose: bool = False,
) -> None:
    """Build and configure the output tree for the development target.

    Parameters
    ----------
    config : Path, optional
        Path to the ``deploy.yaml`` build configuration.
    environment_settings : Path or None, optional
        TOML file holding the placeholder and per-target payloads; when
        ``None`` the path from the build config (or the user default) is used.
    verbose : bool, optional
        Emit debug logging, including the raw identity report.
    """
    _deploy(
        DeployTarget.DEVELOPMENT,
        config=config,
        environment_settings=environment_settings,
        verbose=verbose,
    )


@app.command(help="Deploy to production after confirming a production identity.")
def production(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to build config")
    ] = DEFAULT_CONFIG,
    environment_settings: typ.Annotated[
        Path | None,
        Parameter(help="Override the environment settings TOML"),
    ] = None,
    verbose: bool = False,
) -> None:
    """Build and configure the output tree for the production target."""
    _deploy(
        DeployTarget.PRODUCTION,
        config=config,
        environment_settings=environment_settings,
        verbose=verbose,
    )


@app.command(help="Check whether the current identity may deploy to a target.")
def identity(
    target: DeployTarget,
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to build config")
    ] = DEFAULT_CONFIG,
    verbose: bool = False,
) -> None:
    """Run only the identity gate and print its decision."""
    _configure_logging(verbose)
    try:
        gate = IdentityGate(load_build_config(config).identity)
        result = asyncio.run(gate.authorize(target))
    except _HANDLED_ERRORS as exc:
        _fail(exc)
    print(f"{result.decision.value}: {result.message}")
    if not result.authorized:
        raise SystemExit(EXIT_NOT_AUTHORIZED)


@app.command(help="Show which fragment each module of a page resolves to.")
def resolve(
    page: str,
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to build config")
    ] = DEFAULT_CONFIG,
) -> None:
    """Print the winning precedence root and fragment path per module."""
    try:
        build_config = load_build_config(config)
        declaration = build_config.get_page(page)
    except (*_HANDLED_ERRORS, KeyError) as exc:
        _fail(exc)
    resolver = ModuleResolver(build_config.modules_root, build_config.modules)
    for reference in declaration.modules:
        match resolver.locate(reference):
            case (location, path):
                print(f"{reference}: {location.value} {_format_path(path)}")
            case None:
                print(f"{reference}: no fragment")


def main() -> None:
    """Invoke the Cyclopts application behind the `cms-deploy` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
