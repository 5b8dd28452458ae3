"""Comparable search orchestration.

Address searches walk the fallback tiers from most to least specific, asking
the listings provider once per requested status inside each tier. The first
tier that yields anything wins; its candidates are scored against the subject
property and the best ``limit`` are returned. Provider failures only empty the
(tier, status) pair they happened in.

Searches without an address go straight to the provider with the structured
criteria and are returned in provider order, paginated.
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from .address.fallbacks import SearchTier, tiers_for
from .address.parser import STREET_SUFFIXES, parse_address
from .api.schemas import ComparableSearchRequest, ComparableSearchResponse, ListingOut
from .comps.listing import Candidate, candidate_from_payload
from .comps.ranking import clamp_limit, rank_candidates, score_all
from .comps.scoring import (
    DEFAULT_SCORING,
    ScoringConfig,
    SubjectProperty,
    distance_from_subject,
    score_breakdown,
)
from .config import DEFAULT_SOLD_DAYS, Settings, get_settings
from .errors import SearchValidationError, UpstreamError
from .normalize import normalize_street
from .providers.base import ACTIVE, CLOSED, ListingsClient
from .providers.repliers import min_closed_date


logger = logging.getLogger("cma.search")

NO_RESULTS_MESSAGE = "No properties found for the specified address"
EXACT_MATCH = "exact_match"
FALLBACK_SEARCH = "fallback_search"


def _log_event(event: Dict[str, Any], level: int = logging.INFO) -> None:
    logger.log(level, json.dumps(event, ensure_ascii=False, default=str))


@dataclass(frozen=True)
class TierAttempt:
    tier: int
    kind: str
    status: str
    items_found: int
    result: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "tier": self.tier,
            "kind": self.kind,
            "status": self.status,
            "items_found": self.items_found,
            "result": self.result,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class TierResult:
    index: int
    tier: SearchTier
    candidates: Tuple[Candidate, ...] = ()
    attempts: Tuple[TierAttempt, ...] = ()
    timed_out: bool = False

    @property
    def exact_match(self) -> bool:
        return any(is_exact_match(c, self.tier) for c in self.candidates)


class Deadline:
    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if not seconds or seconds <= 0 else clock() + seconds

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at


def is_exact_match(candidate: Candidate, tier: SearchTier) -> bool:
    """Street number and street name both equal the tier's search fields.

    Suffix and unit are not compared, so two units at one street number both
    count as a match.
    """

    if not tier.street_number or not tier.street_name:
        return False
    return normalize_street(candidate.street_number) == normalize_street(
        tier.street_number
    ) and normalize_street(candidate.street_name) == normalize_street(tier.street_name)


def normalize_payloads(payloads: List[Any], cdn_base: str) -> List[Candidate]:
    candidates: List[Candidate] = []
    for raw in payloads:
        try:
            candidates.append(candidate_from_payload(raw, cdn_base))
        except ValueError as exc:
            logger.warning("skipping malformed listing payload: %s", exc)
    return candidates


def run_tier(
    client: ListingsClient,
    tier: SearchTier,
    index: int,
    statuses: List[str],
    *,
    sold_within_days: int,
    cdn_base: str,
    deadline: Optional[Deadline] = None,
) -> TierResult:
    """Query every status for one tier and combine what came back."""

    candidates: List[Candidate] = []
    attempts: List[TierAttempt] = []
    kind = tier.kind.value
    for status in statuses:
        if deadline is not None and deadline.expired():
            attempts.append(TierAttempt(index, kind, status, 0, "skipped", "deadline exceeded"))
            return TierResult(index, tier, tuple(candidates), tuple(attempts), timed_out=True)
        try:
            payloads = client.search(tier.params, status, sold_within_days=sold_within_days)
        except Exception as exc:
            logger.warning("tier %d (%s) status %s failed: %s", index, kind, status, exc)
            attempts.append(TierAttempt(index, kind, status, 0, "failed", str(exc)))
            continue
        found = normalize_payloads(list(payloads or []), cdn_base)
        attempts.append(TierAttempt(index, kind, status, len(found), "success"))
        candidates.extend(found)
    return TierResult(index, tier, tuple(candidates), tuple(attempts))


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def criteria_params(
    request: ComparableSearchRequest,
    today: Optional[date] = None,
    sold_within_days: Optional[int] = None,
) -> Dict[str, Any]:
    """Provider parameters for a criteria (non-address) search.

    ``sold_within_days`` is the lookback already resolved against settings;
    without it the request value, then the built-in default, is used.
    """

    params: Dict[str, Any] = {}
    simple = (
        ("city", request.city),
        ("zip", request.zip),
        ("county", request.county),
        ("minBeds", request.min_beds),
        ("minBaths", request.min_baths),
        ("minPrice", request.min_price),
        ("maxPrice", request.max_price),
        ("style", request.property_type),
        ("minSqft", request.min_sqft),
        ("maxSqft", request.max_sqft),
        ("minYearBuilt", request.min_year_built),
        ("maxYearBuilt", request.max_year_built),
    )
    for key, value in simple:
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ""):
            params[key] = _fmt(value)
    if request.mls_numbers:
        params["mlsNumber"] = list(request.mls_numbers)

    has_closed = CLOSED in request.statuses
    active = [s for s in request.statuses if s != CLOSED]
    if has_closed and not active:
        params["status"] = "U"
        params["lastStatus"] = "Sld"
        params["minClosedDate"] = min_closed_date(
            sold_within_days or request.date_sold_days or DEFAULT_SOLD_DAYS, today
        )
    else:
        # Mixed requests only send the non-closed statuses; the provider
        # cannot combine both encodings in one query.
        params["standardStatus"] = active or [ACTIVE]
    return params


def _listing_out(candidate: Candidate, subject: Optional[SubjectProperty]) -> ListingOut:
    return ListingOut.from_candidate(candidate, distance_from_subject(candidate, subject))


class ComparableSearch:
    def __init__(
        self,
        client: ListingsClient,
        settings: Optional[Settings] = None,
        scoring: ScoringConfig = DEFAULT_SCORING,
        today_fn: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.monotonic,
        suffixes=STREET_SUFFIXES,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.scoring = scoring
        self.today_fn = today_fn
        self.clock = clock
        self.suffixes = suffixes
        self.last_attempts: List[TierAttempt] = []

    def search(self, request: ComparableSearchRequest) -> ComparableSearchResponse:
        self.last_attempts = []
        if request.is_address_search():
            return self.search_address(request)
        if request.has_criteria():
            return self.search_criteria(request)
        raise SearchValidationError("search or at least one criteria field is required")

    def sold_within_days(self, request: ComparableSearchRequest) -> int:
        return request.date_sold_days or self.settings.default_sold_days

    def search_address(self, request: ComparableSearchRequest) -> ComparableSearchResponse:
        text = request.search_text
        limit = clamp_limit(request.limit)
        parsed = parse_address(text, self.suffixes)
        tiers = tiers_for(parsed, text)
        _log_event({"event": "address_search", "tiers": [t.kind.value for t in tiers]})
        logger.debug("parsed address components: %s", parsed.to_dict())

        deadline = Deadline(self.settings.search_deadline_seconds, self.clock)
        winner: Optional[TierResult] = None
        for index, tier in enumerate(tiers, start=1):
            result = run_tier(
                self.client,
                tier,
                index,
                request.statuses,
                sold_within_days=self.sold_within_days(request),
                cdn_base=self.settings.photo_cdn_base,
                deadline=deadline,
            )
            self.last_attempts.extend(result.attempts)
            for attempt in result.attempts:
                _log_event({"event": "tier_attempt", **attempt.to_dict()})
            if result.candidates:
                winner = result
                break
            if result.timed_out:
                logger.warning("search deadline exceeded after tier %d", index)
                break

        if winner is None:
            return ComparableSearchResponse(
                listings=[],
                total=0,
                page=1,
                total_pages=0,
                results_per_page=limit,
                message=NO_RESULTS_MESSAGE,
                address_parsed=False,
                search_strategy=FALLBACK_SEARCH,
                parsed_address=parsed.to_dict(),
            )

        exact = winner.exact_match
        subject = request.subject()
        today = self.today_fn()
        scored = score_all(winner.candidates, subject, config=self.scoring, today=today)
        if self.settings.search_debug:
            for s in scored:
                _log_event(
                    {
                        "event": "candidate_score",
                        "mls_number": s.candidate.mls_number,
                        "score": s.score,
                        "parts": score_breakdown(
                            s.candidate, subject, config=self.scoring, today=today
                        ),
                    }
                )
        ranked = rank_candidates(scored, limit)
        _log_event(
            {
                "event": "address_search_done",
                "tier": winner.index,
                "kind": winner.tier.kind.value,
                "candidates": len(winner.candidates),
                "returned": len(ranked),
                "exact_match": exact,
            }
        )
        return ComparableSearchResponse(
            listings=[_listing_out(c, subject) for c in ranked],
            total=len(ranked),
            page=1,
            total_pages=1,
            results_per_page=len(ranked),
            address_parsed=exact,
            search_strategy=EXACT_MATCH if exact else FALLBACK_SEARCH,
            parsed_address=parsed.to_dict(),
        )

    def search_criteria(self, request: ComparableSearchRequest) -> ComparableSearchResponse:
        per_page = clamp_limit(request.limit)
        page = max(1, request.page)
        params = criteria_params(request, self.today_fn(), self.sold_within_days(request))
        try:
            payloads, total = self.client.search_page(params, page=page, per_page=per_page)
        except Exception as exc:
            logger.error("criteria search failed: %s", exc)
            raise UpstreamError("Failed to search properties") from exc

        subject = request.subject()
        candidates = normalize_payloads(list(payloads or []), self.settings.photo_cdn_base)
        total = total or len(candidates)
        _log_event({"event": "criteria_search", "page": page, "returned": len(candidates), "total": total})
        return ComparableSearchResponse(
            listings=[_listing_out(c, subject) for c in candidates],
            total=total,
            page=page,
            total_pages=math.ceil(total / per_page),
            results_per_page=per_page,
        )


def search_comparables(
    request: ComparableSearchRequest,
    client: ListingsClient,
    **kwargs: Any,
) -> ComparableSearchResponse:
    return ComparableSearch(client, **kwargs).search(request)
