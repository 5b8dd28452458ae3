from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional

from .listing import Candidate
from .scoring import DEFAULT_SCORING, ScoringConfig, SubjectProperty, score_candidate


DEFAULT_LIMIT = 25
MAX_LIMIT = 50


def clamp_limit(limit: Any, default: int = DEFAULT_LIMIT) -> int:
    try:
        n = int(limit) if limit is not None else default
    except (TypeError, ValueError):
        n = default
    return max(1, min(n, MAX_LIMIT))


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: Candidate
    score: float
    position: int


def score_all(
    candidates: Iterable[Candidate],
    subject: Optional[SubjectProperty] = None,
    *,
    config: ScoringConfig = DEFAULT_SCORING,
    today: Optional[date] = None,
) -> List[ScoredCandidate]:
    return [
        ScoredCandidate(
            candidate=c,
            score=score_candidate(c, subject, config=config, today=today),
            position=i,
        )
        for i, c in enumerate(candidates)
    ]


def rank_candidates(scored: Iterable[ScoredCandidate], limit: int) -> List[Candidate]:
    """Highest score first, provider order on ties, at most ``limit`` items.

    Scores are dropped here; callers only ever see bare candidates.
    """

    ordered = sorted(scored, key=lambda s: (-s.score, s.position))
    return [s.candidate for s in ordered[: max(0, int(limit))]]
