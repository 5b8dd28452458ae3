"""Package initializer for `cma_comps`."""

from .search import ComparableSearch, search_comparables

__all__ = ["ComparableSearch", "search_comparables"]
