"""
Core domain layer: dataset store, filter state, filter engine
and the statistics engine
"""

from .dataset import Dataset
from .filter_engine import apply_filters
from .filter_state import FilterState, resolve_filter_dimension

__all__ = ["Dataset", "FilterState", "apply_filters", "resolve_filter_dimension"]
