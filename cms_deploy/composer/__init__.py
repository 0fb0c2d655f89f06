"""Utilities for resolving module fragments and composing site pages."""

from .page_composer import PageComposer, PageOutput, injection_tag, splice
from .resolver import ModuleResolver, module_directory_name

__all__ = [
    "ModuleResolver",
    "PageComposer",
    "PageOutput",
    "injection_tag",
    "module_directory_name",
    "splice",
]
