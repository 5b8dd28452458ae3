from .base import (
    ACTIVE,
    CLOSED,
    DEFAULT_STATUSES,
    ListingsClient,
    canonical_status,
    normalize_statuses,
)
from .fixture import FixtureListingsClient
from .repliers import RepliersClient, RetryConfig, status_params

__all__ = [
    "ACTIVE",
    "CLOSED",
    "DEFAULT_STATUSES",
    "FixtureListingsClient",
    "ListingsClient",
    "RepliersClient",
    "RetryConfig",
    "canonical_status",
    "normalize_statuses",
    "status_params",
]
