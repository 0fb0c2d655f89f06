"""Tests for the identity-gated pipeline orchestrator."""

from __future__ import annotations

import asyncio
import dataclasses as dc

import pytest

from cms_deploy.config import DeployTarget, load_build_config
from cms_deploy.environment import EnvironmentConfigError
from cms_deploy.identity import Decision, IdentityCheckError, IdentityGate
from cms_deploy.pipeline import (
    DEFAULT_STAGES,
    PipelineContext,
    PipelineOrchestrator,
    Stage,
    StageError,
)

STAGE_NAMES = [
    "clean_content",
    "copy_content",
    "compose_pages",
    "compile_styles",
    "compile_scripts",
    "configure_environment",
    "clean_non_publishable",
]


def test_default_stage_order() -> None:
    assert [stage.name for stage in DEFAULT_STAGES] == STAGE_NAMES


def test_authorized_production_run_builds_output(
    site, static_check, identity_reports, fake_compilers
) -> None:
    stale = site.output / "stale.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")
    config = load_build_config(site.config_path)
    gate = IdentityGate(config.identity, check=static_check(identity_reports["production"]))

    result = asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.PRODUCTION))

    assert result.deployed
    assert result.completed == STAGE_NAMES
    assert not stale.exists()
    index = (site.output / "index.html").read_text(encoding="utf-8")
    assert "<nav>X</nav>" in index
    assert "<footer>Primary</footer>" in index
    env_script = (site.output / "Framework" / "environment.js").read_text(encoding="utf-8")
    assert "apiKey: 'live-key'" in env_script
    assert "dev-key" not in env_script
    assert not (site.output / "Framework" / "README.md").exists()
    assert (site.output / "Styles" / "site.css").exists()
    assert not list(site.output.rglob("*.scss"))
    assert result.context.configured == site.output / "Framework" / "environment.js"
    sass_sources = [call[1] for call in fake_compilers.calls if call[0] == "sass"]
    assert sass_sources == [str(site.output / "Styles" / "site.scss")]
    babel_sources = [call[1] for call in fake_compilers.calls if call[0] == "babel"]
    assert babel_sources == [str(site.output / "Framework" / "environment.js")]


def test_authorized_development_run_uses_development_payload(
    site, static_check, identity_reports, fake_compilers
) -> None:
    config = load_build_config(site.config_path)
    gate = IdentityGate(config.identity, check=static_check(identity_reports["development"]))

    result = asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.DEVELOPMENT))

    assert result.completed == STAGE_NAMES
    env_script = (site.output / "Framework" / "environment.js").read_text(encoding="utf-8")
    assert "apiKey: 'dev-key'" in env_script


@pytest.mark.parametrize(
    ("report", "target", "decision"),
    [
        ("development", DeployTarget.PRODUCTION, Decision.DENIED),
        ("production", DeployTarget.DEVELOPMENT, Decision.DENIED),
        ("garbled", DeployTarget.PRODUCTION, Decision.INDETERMINATE),
    ],
)
def test_unauthorized_runs_touch_nothing(
    site, static_check, identity_reports, fake_compilers, report, target, decision
) -> None:
    config = load_build_config(site.config_path)
    gate = IdentityGate(config.identity, check=static_check(identity_reports[report]))

    result = asyncio.run(PipelineOrchestrator(config, gate=gate).run(target))

    assert result.authorization.decision is decision
    assert result.completed == []
    assert not site.output.exists()
    assert fake_compilers.calls == []


def test_identity_check_failure_halts_before_stages(site, failing_check) -> None:
    config = load_build_config(site.config_path)
    gate = IdentityGate(config.identity, check=failing_check())
    with pytest.raises(IdentityCheckError):
        asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.PRODUCTION))
    assert not site.output.exists()


def test_stage_failure_stops_the_run(site, static_check, identity_reports) -> None:
    config = load_build_config(site.config_path)
    config = dc.replace(config, source_root=site.root / "Missing")
    gate = IdentityGate(config.identity, check=static_check(identity_reports["production"]))

    with pytest.raises(StageError) as excinfo:
        asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.PRODUCTION))

    assert excinfo.value.stage == "copy_content"
    assert excinfo.value.completed == ("clean_content",)
    assert isinstance(excinfo.value.cause, FileNotFoundError)


def test_missing_placeholder_fails_configure_stage(
    site, static_check, identity_reports, fake_compilers
) -> None:
    site.write("Framework/environment.js", "const environment = {};\n")
    config = load_build_config(site.config_path)
    gate = IdentityGate(config.identity, check=static_check(identity_reports["production"]))

    with pytest.raises(StageError) as excinfo:
        asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.PRODUCTION))

    assert excinfo.value.stage == "configure_environment"
    assert excinfo.value.completed == tuple(STAGE_NAMES[:5])
    assert list(site.output.rglob("*.scss")), "clean-up must not run after a failure"


def test_custom_stage_list_runs_in_order(site, static_check, identity_reports) -> None:
    config = load_build_config(site.config_path)
    seen: list[str] = []

    def _recorder(name: str) -> Stage:
        async def _run(ctx: PipelineContext) -> PipelineContext:
            seen.append(name)
            return ctx

        return Stage(name, _run)

    gate = IdentityGate(config.identity, check=static_check(identity_reports["development"]))
    orchestrator = PipelineOrchestrator(
        config, gate=gate, stages=[_recorder("first"), _recorder("second")]
    )
    result = asyncio.run(orchestrator.run(DeployTarget.DEVELOPMENT))

    assert seen == ["first", "second"]
    assert result.completed == ["first", "second"]


def test_missing_environment_file_fails_instead_of_publishing(
    site, static_check, identity_reports, fake_compilers
) -> None:
    config = dc.replace(load_build_config(site.config_path), environment_file=None)
    gate = IdentityGate(config.identity, check=static_check(identity_reports["production"]))

    with pytest.raises(StageError) as excinfo:
        asyncio.run(PipelineOrchestrator(config, gate=gate).run(DeployTarget.PRODUCTION))

    assert excinfo.value.stage == "configure_environment"
    assert isinstance(excinfo.value.cause, EnvironmentConfigError)
    assert excinfo.value.completed == tuple(STAGE_NAMES[:5])
    env_script = (site.output / "Framework" / "environment.js").read_text(encoding="utf-8")
    assert "'%FIREBASE_CONFIG%'" in env_script
