"""Shared fixtures building a throwaway site tree for cms-deploy tests."""

from __future__ import annotations

import dataclasses as dc
import subprocess
import typing as typ
from pathlib import Path
from types import SimpleNamespace

import pytest

PRODUCTION_REPORT = (
    "Project ID / Instance    Project Name\n"
    "example-live             Production-Project\n"
)
DEVELOPMENT_REPORT = (
    "Project ID / Instance    Project Name\n"
    "example-dev              Other-Project\n"
)

INDEX_TEMPLATE = """<html>
<body>
<!-- inject:navigation_bar:html -->
<main>Welcome</main>
<!-- inject:footer:html -->
</body>
</html>
"""

ENVIRONMENT_SCRIPT = "const environment = '%FIREBASE_CONFIG%';\nexport default environment;\n"


@dc.dataclass(slots=True)
class SiteTree:
    """Paths of a generated site fixture."""

    root: Path
    source: Path
    output: Path
    modules: Path
    config_path: Path
    settings_path: Path

    def write(self, relative: str, content: str) -> Path:
        path = self.source / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def fragment(self, location: str, directory: str, name: str, content: str) -> Path:
        return self.write(f"Modules/{location}/{directory}/{name}.html", content)


def _write_config(root: Path) -> Path:
    path = root / "deploy.yaml"
    path.write_text(
        f"""
paths:
  source: {root / "App"}
  output: {root / "Deploy"}
  environment_file: Framework/environment.js
  environment_settings: {root / "environment.toml"}
modules:
  root: Modules
copy:
  restrict:
    Framework: [.js]
compile:
  styles:
    command: [sass, "{{source}}", "{{target}}"]
    patterns: ["**/*.scss"]
    target_suffix: .css
  scripts:
    command: [babel, "{{source}}", --out-file, "{{target}}"]
    patterns: ["Framework/*.js"]
publish:
  exclude: ["**/*.scss"]
pages:
  index: [navigation_bar, footer]
""".strip()
        + "\n",
        encoding="utf-8",
    )
    return path


def _write_settings(root: Path) -> Path:
    path = root / "environment.toml"
    path.write_text(
        """
placeholder = "'%FIREBASE_CONFIG%'"

[development]
apiKey = "dev-key"
authDomain = "example-dev.firebaseapp.com"

[production]
apiKey = "live-key"
authDomain = "example.firebaseapp.com"
""".strip()
        + "\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def site(tmp_path: Path) -> SiteTree:
    """Build a source tree with one page, fragments, styles, and scripts."""
    tree = SiteTree(
        root=tmp_path,
        source=tmp_path / "App",
        output=tmp_path / "Deploy",
        modules=tmp_path / "App" / "Modules",
        config_path=_write_config(tmp_path),
        settings_path=_write_settings(tmp_path),
    )
    tree.write("index.html", INDEX_TEMPLATE)
    tree.fragment("Shared", "NavigationBar", "navigation_bar", "<nav>X</nav>")
    tree.fragment("Primary", "Footer", "footer", "<footer>Primary</footer>")
    tree.write("Styles/site.scss", "body { color: red; }\n")
    tree.write("Styles/_mixins.scss", "@mixin x {}\n")
    tree.write("Framework/environment.js", ENVIRONMENT_SCRIPT)
    tree.write("Framework/README.md", "framework notes\n")
    return tree


class FakeCompilerRun:
    """Stand-in for ``subprocess.run`` that records compiler invocations."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def __call__(
        self, args: list[str], check: bool, text: bool, capture_output: bool
    ) -> SimpleNamespace:
        self.calls.append(list(args))
        if args[0] == "sass":
            Path(args[2]).write_text("/* compiled */\n", encoding="utf-8")
        return SimpleNamespace(returncode=0, stdout="", stderr="")


@pytest.fixture()
def fake_compilers(monkeypatch: pytest.MonkeyPatch) -> FakeCompilerRun:
    """Replace compiler subprocess calls with a recorder."""
    from cms_deploy import compilers

    fake = FakeCompilerRun()
    monkeypatch.setattr(compilers.subprocess, "run", fake)
    return fake


IdentityCheckFactory = typ.Callable[..., typ.Callable[[], typ.Awaitable[typ.Any]]]


@pytest.fixture()
def identity_reports() -> dict[str, str]:
    """Canned identity check outputs keyed by the account they describe."""
    return {
        "production": PRODUCTION_REPORT,
        "development": DEVELOPMENT_REPORT,
        "garbled": "Error: not logged in\n",
    }


@pytest.fixture()
def static_check() -> IdentityCheckFactory:
    """Return a factory for identity checks yielding fixed output."""
    from cms_deploy.identity import IdentityReport

    def _factory(stdout: str, stderr: str = "") -> typ.Callable[[], typ.Awaitable[IdentityReport]]:
        calls: list[int] = []

        async def _check() -> IdentityReport:
            calls.append(1)
            return IdentityReport(stdout=stdout, stderr=stderr)

        _check.calls = calls  # type: ignore[attr-defined]
        return _check

    return _factory


@pytest.fixture()
def failing_check() -> IdentityCheckFactory:
    """Return a factory for identity checks that fail like a crashed command."""
    from cms_deploy.identity import IdentityCheckError

    def _factory(message: str = "boom") -> typ.Callable[[], typ.Awaitable[typ.Any]]:
        async def _check() -> typ.Any:
            cause = subprocess.CalledProcessError(1, "firebase")
            raise IdentityCheckError(message) from cause

        return _check

    return _factory
