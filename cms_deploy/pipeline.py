"""Identity-gated build pipeline for publishing the site.

A run asks :class:`~cms_deploy.identity.IdentityGate` for permission first and
only then walks a fixed list of stages, each an async function that takes a
:class:`PipelineContext` and returns the next one:

1. ``clean_content`` removes the previous output tree.
2. ``copy_content`` copies the source tree, filtering restricted subtrees.
3. ``compose_pages`` splices module fragments into every declared page.
4. ``compile_styles`` runs the stylesheet compiler.
5. ``compile_scripts`` runs the script transpiler.
6. ``configure_environment`` writes the target's settings into the bundle.
7. ``clean_non_publishable`` strips sources that must not be published.

Stages never overlap since each relies on the tree its predecessor left. A
failing stage stops the run with :class:`StageError`; earlier stages are not
undone.

Example
-------
>>> import asyncio
>>> from pathlib import Path
>>> from cms_deploy.config import DeployTarget, load_build_config
>>> from cms_deploy.pipeline import PipelineOrchestrator
>>> config = load_build_config(Path("config/deploy.yaml"))  # doctest: +SKIP
>>> result = asyncio.run(
...     PipelineOrchestrator(config).run(DeployTarget.DEVELOPMENT)
... )  # doctest: +SKIP
>>> result.completed[-1]  # doctest: +SKIP
'clean_non_publishable'
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from .compilers import compile_tree
from .composer import ModuleResolver, PageComposer, PageOutput
from .config import (
    DEFAULT_ENVIRONMENT_SETTINGS_PATH,
    BuildConfig,
    DeployTarget,
    EnvironmentSettings,
    load_environment_settings,
)
from .environment import EnvironmentConfigError, EnvironmentConfigurator
from .filesystem import clean_tree, copy_tree, remove_matching
from .identity import AuthorizationResult, IdentityGate

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True, frozen=True)
class PipelineContext:
    """State handed from one stage to the next."""

    config: BuildConfig
    target: DeployTarget
    environment: EnvironmentSettings | None = None
    copied: tuple[Path, ...] = ()
    composed: tuple[PageOutput, ...] = ()
    compiled: tuple[Path, ...] = ()
    configured: Path | None = None
    removed: tuple[Path, ...] = ()


StageFn = cabc.Callable[[PipelineContext], cabc.Awaitable[PipelineContext]]


@dc.dataclass(slots=True, frozen=True)
class Stage:
    """A named pipeline step."""

    name: str
    run: StageFn


class StageError(RuntimeError):
    """Raised when a pipeline stage fails; carries the stages already done."""

    def __init__(self, stage: str, completed: cabc.Sequence[str], cause: BaseException) -> None:
        self.stage = stage
        self.completed = tuple(completed)
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")


@dc.dataclass(slots=True)
class PipelineResult:
    """Outcome of a pipeline run."""

    authorization: AuthorizationResult
    completed: list[str]
    context: PipelineContext

    @property
    def deployed(self) -> bool:
        return self.authorization.authorized


async def clean_content(ctx: PipelineContext) -> PipelineContext:
    await asyncio.to_thread(clean_tree, ctx.config.output_root)
    return ctx


async def copy_content(ctx: PipelineContext) -> PipelineContext:
    copied = await asyncio.to_thread(
        copy_tree,
        ctx.config.source_root,
        ctx.config.output_root,
        restrictions=ctx.config.copy_restrictions,
    )
    return dc.replace(ctx, copied=tuple(copied))


async def compose_pages(ctx: PipelineContext) -> PipelineContext:
    config = ctx.config
    composer = PageComposer(
        ModuleResolver(config.modules_root, config.modules),
        pages_root=config.pages_root,
    )
    outputs = await composer.compose_all(config.pages.values())
    return dc.replace(ctx, composed=tuple(outputs))


async def compile_styles(ctx: PipelineContext) -> PipelineContext:
    outputs = await asyncio.to_thread(
        compile_tree, ctx.config.output_root, ctx.config.styles, label="stylesheet"
    )
    return dc.replace(ctx, compiled=ctx.compiled + tuple(outputs))


async def compile_scripts(ctx: PipelineContext) -> PipelineContext:
    outputs = await asyncio.to_thread(
        compile_tree, ctx.config.output_root, ctx.config.scripts, label="script"
    )
    return dc.replace(ctx, compiled=ctx.compiled + tuple(outputs))


async def configure_environment(ctx: PipelineContext) -> PipelineContext:
    """Write the target payload into the configured environment file."""
    config = ctx.config
    if config.environment_file is None:
        msg = "No environment file configured; refusing to publish the placeholder."
        raise EnvironmentConfigError(msg)
    settings = ctx.environment
    if settings is None:
        settings_path = config.environment_settings or DEFAULT_ENVIRONMENT_SETTINGS_PATH
        settings = await asyncio.to_thread(load_environment_settings, settings_path)
    configurator = EnvironmentConfigurator(
        config.output_root / config.environment_file, settings
    )
    configured = await asyncio.to_thread(configurator.apply, ctx.target)
    return dc.replace(ctx, environment=settings, configured=configured)


async def clean_non_publishable(ctx: PipelineContext) -> PipelineContext:
    removed = await asyncio.to_thread(
        remove_matching, ctx.config.output_root, ctx.config.publish_exclude
    )
    return dc.replace(ctx, removed=tuple(removed))


DEFAULT_STAGES: tuple[Stage, ...] = (
    Stage("clean_content", clean_content),
    Stage("copy_content", copy_content),
    Stage("compose_pages", compose_pages),
    Stage("compile_styles", compile_styles),
    Stage("compile_scripts", compile_scripts),
    Stage("configure_environment", configure_environment),
    Stage("clean_non_publishable", clean_non_publishable),
)


class PipelineOrchestrator:
    """Run the build stages for a target once the identity gate agrees."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        gate: IdentityGate | None = None,
        environment: EnvironmentSettings | None = None,
        stages: cabc.Sequence[Stage] = DEFAULT_STAGES,
    ) -> None:
        """Initialize the orchestrator.

        Parameters
        ----------
        config : BuildConfig
            Build layout, page declarations, and tool settings.
        gate : IdentityGate, optional
            Gate consulted before any stage runs; defaults to one built from
            ``config.identity``.
        environment : EnvironmentSettings, optional
            Pre-loaded environment payloads. When omitted they are read from
            the settings TOML during ``configure_environment``.
        stages : sequence of Stage, optional
            Ordered stage list; defaults to :data:`DEFAULT_STAGES`.
        """
        self.config = config
        self.gate = gate or IdentityGate(config.identity)
        self.environment = environment
        self.stages = tuple(stages)

    async def run(self, target: DeployTarget) -> PipelineResult:
        """Authorize ``target`` and run every stage in order.

        Returns
        -------
        PipelineResult
            The authorization outcome, completed stage names, and final
            context. Denied or indeterminate runs complete no stages.

        Raises
        ------
        IdentityCheckError
            If the identity check could not be run.
        StageError
            If any stage fails; later stages are not attempted.
        """
        ctx = PipelineContext(
            config=self.config, target=target, environment=self.environment
        )
        authorization = await self.gate.authorize(target)
        completed: list[str] = []
        if not authorization.authorized:
            logger.warning("deploy to %s halted before any stage ran", target)
            return PipelineResult(authorization, completed, ctx)

        for stage in self.stages:
            logger.info("stage %s started", stage.name)
            try:
                ctx = await stage.run(ctx)
            except (OSError, RuntimeError, ValueError) as exc:
                logger.error("stage %s failed: %s", stage.name, exc)
                raise StageError(stage.name, completed, exc) from exc
            completed.append(stage.name)
            logger.info("stage %s finished", stage.name)
        logger.info("deploy to %s finished", target)
        return PipelineResult(authorization, completed, ctx)


__all__ = [
    "DEFAULT_STAGES",
    "PipelineContext",
    "PipelineOrchestrator",
    "PipelineResult",
    "Stage",
    "StageError",
    "clean_content",
    "clean_non_publishable",
    "compile_scripts",
    "compile_styles",
    "compose_pages",
    "configure_environment",
    "copy_content",
]
