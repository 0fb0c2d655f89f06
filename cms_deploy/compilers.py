"""Thin wrappers around the external stylesheet and script compilers.

Compilation itself is delegated: each configured command is an argv template
with ``{source}`` and ``{target}`` fields, run once per matching file in the
output tree. Stylesheets default to ``sass`` writing a sibling ``.css``;
scripts default to ``babel`` rewriting the file in place.
"""

from __future__ import annotations

import logging
import subprocess
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config import CompileSettings

logger = logging.getLogger(__name__)


class CompileError(RuntimeError):
    """Raised when an external compiler fails or cannot be started."""


def run_compiler(args: list[str]) -> subprocess.CompletedProcess[str]:
    """Invoke a compiler command, raising :class:`CompileError` on failure."""
    try:
        return subprocess.run(  # noqa: S603
            args,
            check=True,
            text=True,
            capture_output=True,
        )
    except FileNotFoundError as exc:
        msg = f"Compiler not found: {args[0]}"
        raise CompileError(msg) from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        msg = f"{' '.join(args)} exited with status {exc.returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        raise CompileError(msg) from exc


def collect_sources(root: Path, settings: CompileSettings) -> list[Path]:
    """Return the files under ``root`` matched by ``settings.patterns``."""
    seen: set[Path] = set()
    sources: list[Path] = []
    for pattern in settings.patterns:
        for fp in sorted(root.glob(pattern)):
            if fp in seen or not fp.is_file():
                continue
            if settings.skip_partials and fp.name.startswith("_"):
                continue
            seen.add(fp)
            sources.append(fp)
    return sources


def build_command(settings: CompileSettings, source: Path) -> tuple[list[str], Path]:
    """Expand the argv template for ``source`` and return it with the target."""
    target = source.with_suffix(settings.target_suffix) if settings.target_suffix else source
    args = [arg.format(source=source, target=target) for arg in settings.command]
    return args, target


def compile_tree(root: Path, settings: CompileSettings, *, label: str) -> list[Path]:
    """Compile every matching file under ``root`` and return the outputs."""
    if not settings.command:
        logger.warning("no %s compiler configured; skipping", label)
        return []
    outputs: list[Path] = []
    for source in collect_sources(root, settings):
        args, target = build_command(settings, source)
        logger.debug("compiling %s: %s", label, " ".join(args))
        run_compiler(args)
        outputs.append(target)
    logger.info("compiled %d %s files", len(outputs), label)
    return outputs


__all__ = [
    "CompileError",
    "build_command",
    "collect_sources",
    "compile_tree",
    "run_compiler",
]
