"""Sphinx configuration for TensorCol documentation.

Initializes metadata, extensions, and build parameters.
"""

from __future__ import annotations

import importlib.util
import sys
import warnings
from datetime import date
from pathlib import Path
from typing import Final

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
SRC_PATH: Final[Path] = PROJECT_ROOT / "src"

sys.path.insert(0, str(SRC_PATH))

tensorcol_spec = importlib.util.spec_from_file_location(
    "tensorcol", SRC_PATH / "tensorcol" / "__init__.py"
)
if tensorcol_spec is None or tensorcol_spec.loader is None:
    msg = f"Unable to locate tensorcol package at {SRC_PATH / 'tensorcol' / '__init__.py'}"
    raise ImportError(msg)
tensorcol = importlib.util.module_from_spec(tensorcol_spec)
sys.modules["tensorcol"] = tensorcol
tensorcol_spec.loader.exec_module(tensorcol)
CURRENT_YEAR: Final[int] = date.today().year

project = "TensorCol"
author = "Pablo Antolin"
copyright = f"{CURRENT_YEAR}, Pablo Antolin"  # pylint: disable=redefined-builtin

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.mathjax",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "myst_parser",
]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable", None),
}

exclude_patterns: list[str] = ["_build", "Thumbs.db", ".DS_Store"]

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}

master_doc = "index"

napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True
napoleon_attr_annotations = True

autosummary_generate = True
autodoc_typehints = "description"
autodoc_member_order = "bysource"

myst_enable_extensions = [
    "colon_fence",
    "deflist",
    "dollarmath",
]

html_theme = "sphinx_rtd_theme"
if importlib.util.find_spec("sphinx_rtd_theme") is None:
    warnings.warn(
        "sphinx_rtd_theme not found. Falling back to 'alabaster'.",
        stacklevel=1,
    )
    html_theme = "alabaster"
html_show_sourcelink = True

pygments_style = "default"

version = tensorcol.__version__
release = tensorcol.__version__
