from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple


CLOSED = "Closed"
ACTIVE = "Active"

DEFAULT_STATUSES: Tuple[str, ...] = (ACTIVE, CLOSED)

_CANONICAL_STATUSES = {
    "active": ACTIVE,
    "closed": CLOSED,
    "sold": CLOSED,
    "pending": "Pending",
    "active under contract": "Active Under Contract",
}


def canonical_status(value: Any) -> Optional[str]:
    key = " ".join(str(value or "").split()).lower()
    return _CANONICAL_STATUSES.get(key)


def normalize_statuses(values: Optional[Iterable[Any]]) -> List[str]:
    """Canonical, de-duplicated statuses; unknown values are dropped.

    Falls back to the defaults when nothing usable remains.
    """

    out: List[str] = []
    for value in values or ():
        status = canonical_status(value)
        if status and status not in out:
            out.append(status)
    return out or list(DEFAULT_STATUSES)


class ListingsClient(Protocol):
    """Listings provider used by the comparable search.

    ``search`` returns raw provider payloads for one (tier, status) pair and
    raises ``ListingsClientError`` when the call fails. ``search_page`` serves
    criteria searches and returns ``(payloads, total)``.
    """

    name: str

    def search(
        self,
        params: Mapping[str, str],
        status: str,
        *,
        sold_within_days: int,
    ) -> List[Dict[str, Any]]:
        ...

    def search_page(
        self,
        params: Mapping[str, Any],
        *,
        page: int,
        per_page: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        ...
