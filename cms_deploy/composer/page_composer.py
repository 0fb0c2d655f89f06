"""Splice module fragments into page templates.

This module turns a :class:`~cms_deploy.config.PageDeclaration` into a
finished page. The template is read from the output tree (populated by the
copy stage), each declared module is resolved through
:class:`~cms_deploy.composer.resolver.ModuleResolver`, and the fragment's raw
markup replaces the module's injection tag::

    <!-- inject:navigation_bar:html -->

Splicing is keyed by the exact tag text, never by position, so modules
sharing a template must use distinct names. Modules without a fragment leave
their tag in place; an HTML comment is inert in the published page.

Example
-------
>>> import asyncio
>>> from pathlib import Path
>>> from cms_deploy.composer import ModuleResolver, PageComposer
>>> from cms_deploy.config import PageDeclaration
>>> composer = PageComposer(
...     ModuleResolver(Path("App/Modules")), pages_root=Path("Deploy")
... )  # doctest: +SKIP
>>> page = PageDeclaration("index", ("navigation_bar",))
>>> asyncio.run(composer.compose(page)).path  # doctest: +SKIP
PosixPath('Deploy/index.html')
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from cms_deploy._constants import INJECT_TAG_TEMPLATE

if typ.TYPE_CHECKING:
    from pathlib import Path

    from cms_deploy.composer.resolver import ModuleResolver
    from cms_deploy.config import PageDeclaration

logger = logging.getLogger(__name__)


def injection_tag(reference: str, ext: str = "html") -> str:
    """Return the literal injection tag for ``reference``."""
    return INJECT_TAG_TEMPLATE.format(name=reference, ext=ext)


def splice(
    template: str,
    fragments: cabc.Iterable[tuple[str, str | None]],
    *,
    ext: str = "html",
) -> str:
    """Replace each module's tag with its fragment content, in order.

    ``fragments`` pairs a module reference with its fragment markup, or
    ``None`` when the module resolved to nothing; those tags are left as-is.
    """
    content = template
    for reference, fragment in fragments:
        if fragment is None:
            continue
        content = content.replace(injection_tag(reference, ext), fragment)
    return content


@dc.dataclass(slots=True)
class PageOutput:
    """A composed page and where it was written."""

    page: PageDeclaration
    path: Path
    content: str
    injected: tuple[str, ...]
    skipped: tuple[str, ...]


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))


class PageComposer:
    """Compose declared pages in place under ``pages_root``."""

    def __init__(
        self, resolver: ModuleResolver, *, pages_root: Path, ext: str = "html"
    ) -> None:
        """Initialize the composer.

        Parameters
        ----------
        resolver : ModuleResolver
            Resolver used to find each module's fragment.
        pages_root : Path
            Directory in the output tree that holds page templates; composed
            pages overwrite their templates at the same relative path.
        ext : str, optional
            Extension label embedded in injection tags. Defaults to
            ``"html"``.
        """
        self.resolver = resolver
        self.pages_root = pages_root
        self.ext = ext

    async def _load_fragment(self, reference: str) -> str | None:
        fragment_path = await asyncio.to_thread(self.resolver.resolve, reference)
        if fragment_path is None:
            logger.debug("module %s has no fragment; leaving its tag", reference)
            return None
        logger.debug("module %s resolved to %s", reference, fragment_path)
        return await asyncio.to_thread(_read_text, fragment_path)

    async def compose(self, page: PageDeclaration) -> PageOutput:
        """Compose ``page`` and persist it, overwriting the template.

        Raises
        ------
        FileNotFoundError
            If the page template is missing from the output tree.
        """
        path = page.template_path(self.pages_root)
        template = await asyncio.to_thread(_read_text, path)
        fragments = await asyncio.gather(
            *(self._load_fragment(reference) for reference in page.modules)
        )
        pairs = list(zip(page.modules, fragments, strict=True))
        content = splice(template, pairs, ext=self.ext)
        await asyncio.to_thread(_write_text, path, content)
        injected = tuple(ref for ref, fragment in pairs if fragment is not None)
        skipped = tuple(ref for ref, fragment in pairs if fragment is None)
        logger.info(
            "composed %s (%d injected, %d skipped)", path, len(injected), len(skipped)
        )
        return PageOutput(
            page=page, path=path, content=content, injected=injected, skipped=skipped
        )

    async def compose_all(
        self, pages: cabc.Iterable[PageDeclaration]
    ) -> list[PageOutput]:
        """Compose independent pages concurrently, preserving input order.

        Raises
        ------
        ValueError
            If two declarations resolve to the same template file.
        """
        pages = list(pages)
        owners: dict[Path, str] = {}
        for page in pages:
            path = page.template_path(self.pages_root)
            if path in owners:
                msg = (
                    f"Pages '{owners[path]}' and '{page.identifier}' both use "
                    f"template '{path}'."
                )
                raise ValueError(msg)
            owners[path] = page.identifier
        return list(await asyncio.gather(*(self.compose(page) for page in pages)))


__all__ = ["PageComposer", "PageOutput", "injection_tag", "splice"]
