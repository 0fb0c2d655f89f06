"""Build and deploy tooling for the templated CMS site.

This package assembles the publishable output tree from the source tree,
composes pages from shared module fragments, and writes the target
environment's settings, all behind a deployment identity check. It backs the
``cms-deploy`` console script.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from cms_deploy import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
