from .listing import Candidate, candidate_from_payload, extract_photos
from .ranking import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    ScoredCandidate,
    clamp_limit,
    rank_candidates,
    score_all,
)
from .scoring import (
    DEFAULT_SCORING,
    ScoringConfig,
    SubjectProperty,
    haversine_miles,
    score_breakdown,
    score_candidate,
)

__all__ = [
    "Candidate",
    "DEFAULT_LIMIT",
    "DEFAULT_SCORING",
    "MAX_LIMIT",
    "ScoredCandidate",
    "ScoringConfig",
    "SubjectProperty",
    "candidate_from_payload",
    "clamp_limit",
    "extract_photos",
    "haversine_miles",
    "rank_candidates",
    "score_all",
    "score_breakdown",
    "score_candidate",
]
