"""Common literal values used across cms_deploy.

These constants keep injection tags, fragment naming, and identity report
markers centralized so the composer, the identity gate, and tests can import
the same values without drifting. Intended for internal use within the
cms_deploy package.

Examples
--------
>>> from cms_deploy import _constants
>>> _constants.INJECT_TAG_TEMPLATE.format(name="navigation_bar", ext="html")
'<!-- inject:navigation_bar:html -->'
>>> _constants.FRAGMENT_SUFFIX
'.html'
"""

INJECT_TAG_TEMPLATE = "<!-- inject:{name}:{ext} -->"
FRAGMENT_SUFFIX = ".html"
MODULE_NAME_SEPARATOR = "_"

DEFAULT_IDENTITY_COMMAND = ("firebase", "list", "--interactive")
REPORT_MARKER = "Project ID / Instance"
PRODUCTION_MARKER = "Production-Project"
