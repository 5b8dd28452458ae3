from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional

from .listing import Candidate


EARTH_RADIUS_MILES = 3959.0
DAYS_PER_MONTH = 30

SOLD_STATUSES = frozenset({"Closed", "Sold"})


@dataclass(frozen=True)
class SubjectProperty:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[float] = None
    property_type: Optional[str] = None

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class ScoringConfig:
    """Thresholds and point adjustments for CMA relevance.

    Thresholds are inclusive; tiers within one signal are exclusive (only the
    tightest matching band applies).
    """

    base_score: float = 100.0

    distance_near_miles: float = 0.5
    distance_near_bonus: float = 50.0
    distance_mid_miles: float = 1.0
    distance_mid_bonus: float = 30.0
    distance_far_miles: float = 2.0
    distance_far_bonus: float = 10.0
    distance_penalty_miles: float = 5.0
    distance_penalty: float = -20.0

    room_tolerance: float = 1.0
    bed_bonus: float = 25.0
    bath_bonus: float = 25.0

    size_close_ratio: float = 0.30
    size_close_bonus: float = 20.0
    size_near_ratio: float = 0.50
    size_near_bonus: float = 10.0
    size_penalty_ratio: float = 1.00
    size_penalty: float = -15.0

    type_match_bonus: float = 15.0
    sold_status_bonus: float = 30.0

    recency_recent_months: float = 3.0
    recency_recent_bonus: float = 20.0
    recency_mid_months: float = 6.0
    recency_mid_bonus: float = 15.0
    recency_year_months: float = 12.0
    recency_year_bonus: float = 5.0


DEFAULT_SCORING = ScoringConfig()


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_from_subject(candidate: Candidate, subject: Optional[SubjectProperty]) -> Optional[float]:
    if subject is None or not subject.has_coordinates():
        return None
    if candidate.latitude is None or candidate.longitude is None:
        return None
    return haversine_miles(
        float(subject.latitude),
        float(subject.longitude),
        float(candidate.latitude),
        float(candidate.longitude),
    )


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def months_since(value: Optional[str], today: date) -> Optional[float]:
    sold = _parse_date(value)
    if sold is None:
        return None
    return (today - sold).days / DAYS_PER_MONTH


def _distance_adjustment(miles: float, cfg: ScoringConfig) -> float:
    if miles <= cfg.distance_near_miles:
        return cfg.distance_near_bonus
    if miles <= cfg.distance_mid_miles:
        return cfg.distance_mid_bonus
    if miles <= cfg.distance_far_miles:
        return cfg.distance_far_bonus
    if miles > cfg.distance_penalty_miles:
        return cfg.distance_penalty
    return 0.0


def _size_adjustment(subject_sqft: float, candidate_sqft: float, cfg: ScoringConfig) -> float:
    diff = abs(candidate_sqft - subject_sqft) / subject_sqft
    if diff <= cfg.size_close_ratio:
        return cfg.size_close_bonus
    if diff <= cfg.size_near_ratio:
        return cfg.size_near_bonus
    if diff > cfg.size_penalty_ratio:
        return cfg.size_penalty
    return 0.0


def _recency_adjustment(months: float, cfg: ScoringConfig) -> float:
    if months <= cfg.recency_recent_months:
        return cfg.recency_recent_bonus
    if months <= cfg.recency_mid_months:
        return cfg.recency_mid_bonus
    if months <= cfg.recency_year_months:
        return cfg.recency_year_bonus
    return 0.0


def score_breakdown(
    candidate: Candidate,
    subject: Optional[SubjectProperty] = None,
    *,
    config: ScoringConfig = DEFAULT_SCORING,
    today: Optional[date] = None,
) -> Dict[str, float]:
    """Per-signal adjustments; signals that do not apply are absent."""

    if subject is None:
        return {}
    today = today or date.today()
    parts: Dict[str, float] = {}

    miles = distance_from_subject(candidate, subject)
    if miles is not None:
        parts["distance"] = _distance_adjustment(miles, config)

    # Missing room counts compare as zero.
    if abs((candidate.beds or 0) - (subject.beds or 0)) <= config.room_tolerance:
        parts["beds"] = config.bed_bonus
    if abs((candidate.baths or 0) - (subject.baths or 0)) <= config.room_tolerance:
        parts["baths"] = config.bath_bonus

    subject_sqft = subject.sqft or 0
    candidate_sqft = candidate.sqft or 0
    if subject_sqft > 0 and candidate_sqft > 0:
        parts["size"] = _size_adjustment(subject_sqft, candidate_sqft, config)

    if candidate.property_type and subject.property_type:
        if candidate.property_type == subject.property_type:
            parts["property_type"] = config.type_match_bonus

    if candidate.status in SOLD_STATUSES:
        parts["status"] = config.sold_status_bonus

    months = months_since(candidate.sold_date, today)
    if months is not None:
        parts["recency"] = _recency_adjustment(months, config)

    return parts


def score_candidate(
    candidate: Candidate,
    subject: Optional[SubjectProperty] = None,
    *,
    config: ScoringConfig = DEFAULT_SCORING,
    today: Optional[date] = None,
) -> float:
    parts = score_breakdown(candidate, subject, config=config, today=today)
    return config.base_score + sum(parts.values())
