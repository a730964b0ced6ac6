"""
Top-level package for the bioprocess analytics browser.

This package exposes the dashboard core (dataset store, filtering, statistics)
and the thin plotly views on top of it.
Most code should import from submodules such as:
    bp_browser.core
    bp_browser.services
    bp_browser.views
"""

__all__: list[str] = []
