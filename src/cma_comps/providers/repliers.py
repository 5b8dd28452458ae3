from __future__ import annotations

import json
import logging
import random
import time
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from ..config import Settings
from ..errors import ConfigurationError, ListingsClientError
from .base import CLOSED


logger = logging.getLogger("cma.providers")

RETRY_STATUS = {429, 500, 502, 503, 504}

BASE_PARAMS: Tuple[Tuple[str, str], ...] = (
    ("listings", "true"),
    ("type", "Sale"),
    ("sortBy", "createdOnDesc"),
)

TIER_PAGE_SIZE = 50

QueryParams = List[Tuple[str, str]]


class RetryConfig:
    def __init__(self, retries=2, base_delay=0.2, factor=2.0, jitter=0.1):
        self.retries = retries
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter


def compute_backoff_delays(
    retries, base_delay=0.2, factor=2.0, jitter=0.1, rand_fn=None
):
    delays = []
    current = base_delay
    rand_fn = rand_fn or random.random
    for _ in range(retries):
        noise = (rand_fn() * 2 - 1) * jitter
        delays.append(max(0.0, current + noise))
        current *= factor
    return delays


def min_closed_date(sold_within_days: int, today: Optional[date] = None) -> str:
    today = today or date.today()
    return (today - timedelta(days=int(sold_within_days))).isoformat()


def status_params(status: str, sold_within_days: int, today: Optional[date] = None) -> QueryParams:
    """Provider encoding of one listing status.

    Closed listings are requested as "unavailable, last status sold" bounded
    by the lookback window; anything else maps to ``standardStatus``.
    """

    if status == CLOSED:
        return [
            ("status", "U"),
            ("lastStatus", "Sld"),
            ("minClosedDate", min_closed_date(sold_within_days, today)),
        ]
    return [("standardStatus", status)]


def _flatten(params: Mapping[str, Any]) -> QueryParams:
    out: QueryParams = []
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)):
            out.extend((key, str(v)) for v in value if v not in (None, ""))
        else:
            out.append((key, str(value)))
    return out


class RepliersClient:
    """Listings client for the Repliers REST API."""

    name = "repliers"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        today_fn: Callable[[], date] = date.today,
    ):
        if not api_key:
            raise ConfigurationError("Listings API not configured")
        self.base_url = base_url
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep_fn
        self._today = today_fn
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "REPLIERS-API-KEY": api_key,
                "User-Agent": "cma-comps",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RepliersClient":
        return cls(
            api_key=settings.api_key or "",
            base_url=settings.base_url,
            timeout=settings.http_timeout,
            retry_config=RetryConfig(retries=settings.http_retries),
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RepliersClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def search(
        self,
        params: Mapping[str, str],
        status: str,
        *,
        sold_within_days: int,
    ) -> List[Dict[str, Any]]:
        query: QueryParams = list(BASE_PARAMS)
        query += [("resultsPerPage", str(TIER_PAGE_SIZE)), ("pageNum", "1")]
        query += _flatten(params)
        query += status_params(status, sold_within_days, self._today())
        listings, _total = self._fetch(query)
        return listings

    def search_page(
        self,
        params: Mapping[str, Any],
        *,
        page: int,
        per_page: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        query: QueryParams = list(BASE_PARAMS)
        query += [("resultsPerPage", str(per_page)), ("pageNum", str(page))]
        query += _flatten(params)
        return self._fetch(query)

    def _fetch(self, query: Sequence[Tuple[str, str]]) -> Tuple[List[Dict[str, Any]], int]:
        delays = compute_backoff_delays(
            self.retry_config.retries,
            self.retry_config.base_delay,
            self.retry_config.factor,
            self.retry_config.jitter,
        )
        attempts = len(delays) + 1
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = self._client.get(self.base_url, params=list(query))
            except httpx.HTTPError as exc:
                last_error = exc
                logger.warning("listings request failed (attempt %d): %s", attempt + 1, exc)
                if attempt < len(delays):
                    self._sleep(delays[attempt])
                continue
            if response.status_code in RETRY_STATUS and attempt < len(delays):
                logger.warning(
                    "listings request returned %d (attempt %d), retrying",
                    response.status_code,
                    attempt + 1,
                )
                self._sleep(delays[attempt])
                continue
            if response.status_code >= 400:
                raise ListingsClientError(
                    f"listings API returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            return self._parse(response)
        raise ListingsClientError(f"listings API unreachable: {last_error!r}")

    @staticmethod
    def _parse(response: httpx.Response) -> Tuple[List[Dict[str, Any]], int]:
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise ListingsClientError(f"listings API returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ListingsClientError("listings API returned a non-object body")
        listings = data.get("listings") or []
        if not isinstance(listings, list):
            raise ListingsClientError("listings API returned a non-list 'listings' field")
        try:
            total = int(data.get("count") or data.get("total") or len(listings))
        except (TypeError, ValueError):
            total = len(listings)
        return listings, total
