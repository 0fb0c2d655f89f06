"""Filesystem mutations used by the clean, copy, and publish stages."""

from __future__ import annotations

import collections.abc as cabc
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def clean_tree(root: Path) -> bool:
    """Remove ``root`` and everything below it; return whether it existed."""
    if not root.exists():
        return False
    if root.is_dir() and not root.is_symlink():
        shutil.rmtree(root)
    else:
        root.unlink()
    logger.info("removed %s", root)
    return True


def _is_allowed(relative: Path, restrictions: cabc.Mapping[str, tuple[str, ...]]) -> bool:
    """Return whether ``relative`` passes the subtree suffix restrictions.

    A file inside a restricted subtree is copied only when its suffix is in
    that subtree's allow-list. The deepest matching subtree decides.
    """
    posix = relative.as_posix()
    best: str | None = None
    for subtree in restrictions:
        if posix.startswith(f"{subtree}/") and (best is None or len(subtree) > len(best)):
            best = subtree
    if best is None:
        return True
    return relative.suffix in restrictions[best]


def copy_tree(
    src: Path,
    dst: Path,
    *,
    restrictions: cabc.Mapping[str, tuple[str, ...]] | None = None,
) -> list[Path]:
    """Copy files from ``src`` into ``dst`` honouring subtree restrictions.

    Returns the destination paths written, in sorted source order.

    Raises
    ------
    FileNotFoundError
        If ``src`` is not an existing directory.
    """
    if not src.is_dir():
        msg = f"Source directory not found: {src}"
        raise FileNotFoundError(msg)
    restrictions = restrictions or {}
    dst.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for fp in sorted(src.rglob("*")):
        if fp.is_dir():
            continue
        rel = fp.relative_to(src)
        if not _is_allowed(rel, restrictions):
            continue
        outp = dst / rel
        outp.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(fp, outp)
        written.append(outp)
    logger.info("copied %d files from %s to %s", len(written), src, dst)
    return written


def remove_matching(root: Path, patterns: cabc.Iterable[str]) -> list[Path]:
    """Delete files under ``root`` matching any glob in ``patterns``."""
    removed: list[Path] = []
    for pattern in patterns:
        for fp in sorted(root.glob(pattern)):
            if fp.is_file():
                fp.unlink()
                removed.append(fp)
    logger.info("removed %d non-publishable files from %s", len(removed), root)
    return removed


__all__ = ["clean_tree", "copy_tree", "remove_matching"]
