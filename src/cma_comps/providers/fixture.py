from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..normalize import normalize_street
from .base import CLOSED, canonical_status
from .repliers import min_closed_date


def _addr(item: Dict[str, Any]) -> Dict[str, Any]:
    value = item.get("address")
    return value if isinstance(value, dict) else {}


def _details(item: Dict[str, Any]) -> Dict[str, Any]:
    value = item.get("details")
    return value if isinstance(value, dict) else {}


def _num(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class FixtureListingsClient:
    """Fixture-backed deterministic listings client.

    Loads raw provider payloads from a JSON file (a list, or an object with a
    ``listings`` list) and answers searches by filtering them in memory. Every
    call is recorded in ``calls``.
    """

    name = "fixture"

    def __init__(
        self,
        fixture_path: str | Path | None = None,
        listings: Optional[List[Dict[str, Any]]] = None,
        today_fn: Callable[[], date] = date.today,
    ) -> None:
        if listings is None:
            if fixture_path is None:
                raise ValueError("fixture_path or listings is required")
            raw = json.loads(Path(fixture_path).read_text(encoding="utf-8"))
            if isinstance(raw, dict):
                raw = raw.get("listings")
            if not isinstance(raw, list):
                raise ValueError("listings fixture must be a JSON list or {'listings': [...]}")
            listings = raw
        self._listings = [item for item in listings if isinstance(item, dict)]
        self._today = today_fn
        self.calls: List[Dict[str, Any]] = []

    def _matches_address(self, item: Dict[str, Any], params: Mapping[str, Any]) -> bool:
        address = _addr(item)
        postal = str(address.get("zip") or address.get("postalCode") or "")

        number = params.get("streetNumber")
        if number and str(address.get("streetNumber") or "").lower() != str(number).lower():
            return False
        name = params.get("streetName")
        if name and normalize_street(address.get("streetName")) != normalize_street(name):
            return False
        suffix = params.get("streetSuffix")
        if suffix and address.get("streetSuffix"):
            if normalize_street(address.get("streetSuffix")) != normalize_street(suffix):
                return False
        zip_code = params.get("zip")
        if zip_code and postal[:5] != str(zip_code)[:5]:
            return False
        city = params.get("city")
        if city and normalize_street(address.get("city")) != normalize_street(city):
            return False
        mls = params.get("mlsNumber")
        if mls:
            wanted = mls if isinstance(mls, (list, tuple)) else [mls]
            if str(item.get("mlsNumber") or item.get("listingId") or "") not in {str(m) for m in wanted}:
                return False
        search = params.get("search")
        if search:
            haystack = normalize_street(
                " ".join(
                    str(address.get(k) or "")
                    for k in ("streetNumber", "streetName", "streetSuffix", "city", "state")
                )
                + " "
                + postal
            ).split()
            if not all(token in haystack for token in normalize_street(search).split()):
                return False
        return True

    def _matches_status(self, item: Dict[str, Any], status: str, sold_within_days: int) -> bool:
        item_status = canonical_status(item.get("standardStatus") or item.get("status"))
        if item_status != status:
            return False
        if status == CLOSED:
            sold = str(item.get("soldDate") or item.get("closeDate") or "")[:10]
            if sold and sold < min_closed_date(sold_within_days, self._today()):
                return False
        return True

    def _matches_criteria(self, item: Dict[str, Any], params: Mapping[str, Any]) -> bool:
        details = _details(item)
        checks = (
            ("minBeds", details.get("numBedrooms") or item.get("bedroomsTotal"), 1),
            ("minBaths", details.get("numBathrooms") or item.get("bathroomsTotal"), 1),
            ("minPrice", item.get("listPrice"), 1),
            ("maxPrice", item.get("listPrice"), -1),
            ("minSqft", details.get("sqft") or item.get("livingArea"), 1),
            ("maxSqft", details.get("sqft") or item.get("livingArea"), -1),
            ("minYearBuilt", details.get("yearBuilt"), 1),
            ("maxYearBuilt", details.get("yearBuilt"), -1),
        )
        for key, value, direction in checks:
            bound = _num(params.get(key))
            if bound is None:
                continue
            actual = _num(value)
            if actual is None or (actual - bound) * direction < 0:
                return False
        style = params.get("style")
        if style and str(details.get("style") or item.get("propertyType") or "") != str(style):
            return False
        return True

    def search(
        self,
        params: Mapping[str, str],
        status: str,
        *,
        sold_within_days: int,
    ) -> List[Dict[str, Any]]:
        self.calls.append(
            {"params": dict(params), "status": status, "sold_within_days": sold_within_days}
        )
        return [
            dict(item)
            for item in self._listings
            if self._matches_address(item, params)
            and self._matches_status(item, status, sold_within_days)
        ]

    def search_page(
        self,
        params: Mapping[str, Any],
        *,
        page: int,
        per_page: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        self.calls.append({"params": dict(params), "page": page, "per_page": per_page})
        statuses = params.get("standardStatus") or []
        if isinstance(statuses, str):
            statuses = [statuses]
        wanted = [canonical_status(s) for s in statuses]
        if params.get("lastStatus") == "Sld":
            wanted.append(CLOSED)
        matched = []
        for item in self._listings:
            if not self._matches_address(item, params) or not self._matches_criteria(item, params):
                continue
            if wanted and canonical_status(item.get("standardStatus") or item.get("status")) not in wanted:
                continue
            matched.append(dict(item))
        start = (max(1, page) - 1) * per_page
        return matched[start : start + per_page], len(matched)
