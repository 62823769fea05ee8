"""Sphinx configuration for the account service API reference."""

from __future__ import annotations

import sys
from importlib import metadata
from pathlib import Path

# Import from the checkout so the reference builds without an install.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

project = "account-service"
author = "Platform Team"
copyright = f"2024, {author}"

try:
    release = metadata.version("account-service")
except metadata.PackageNotFoundError:
    release = "1.0.0"
version = ".".join(release.split(".")[:2])

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
    "sphinx.ext.napoleon",
    "sphinx_autodoc_typehints",
]

# The reference covers the credential and workflow modules; the driver
# and cache clients are only needed at runtime.
autodoc_mock_imports = ["psycopg", "psycopg_pool", "redis"]
autodoc_member_order = "bysource"
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
    "exclude-members": "__weakref__, __init__",
}
autodoc_typehints = "description"
typehints_use_rtype = False

napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_use_rtype = False

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "pydantic": ("https://docs.pydantic.dev/latest", None),
    "pyjwt": ("https://pyjwt.readthedocs.io/en/stable", None),
}

nitpicky = False
exclude_patterns = ["_build"]
html_theme = "alabaster"
html_theme_options = {"description": "Registration, login and admin user management"}
