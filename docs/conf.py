import os
import sys

# Make the package importable without installing
sys.path.insert(0, os.path.abspath(".."))

project   = "positivity"
copyright = "2026, positivity contributors"
author    = "positivity contributors"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx_autodoc_typehints",
    "sphinx_copybutton",
]

html_theme = "sphinx_rtd_theme"

autodoc_member_order = "bysource"
autodoc_typehints    = "description"

# Plots are rendered off-screen when autodoc imports positivity.plots
os.environ.setdefault("MPLBACKEND", "Agg")

napoleon_use_param = True
napoleon_use_rtype = False
