from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .parser import STREET_SUFFIXES, ParsedAddress, parse_address


class TierKind(str, enum.Enum):
    EXACT = "exact"
    RELAXED = "relaxed"
    FREE_TEXT = "free_text"
    ZIP_ONLY = "zip_only"


@dataclass(frozen=True)
class SearchTier:
    """One precision level of an address search.

    ``params`` holds provider query parameters; keys with no value are never
    stored.
    """

    kind: TierKind
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(cls, kind: TierKind, **params: Optional[str]) -> "SearchTier":
        return cls(kind=kind, params={k: v for k, v in params.items() if v})

    @property
    def street_number(self) -> Optional[str]:
        return self.params.get("streetNumber")

    @property
    def street_name(self) -> Optional[str]:
        return self.params.get("streetName")


def tiers_for(parsed: ParsedAddress, full_address: str) -> List[SearchTier]:
    """Most specific tier first, broadest last."""

    tiers: List[SearchTier] = []

    if parsed.street_number and parsed.street_name and parsed.zip:
        tiers.append(
            SearchTier.build(
                TierKind.EXACT,
                streetNumber=parsed.street_number,
                streetName=parsed.street_name,
                streetSuffix=parsed.street_suffix,
                zip=parsed.zip,
            )
        )

    if parsed.street_name and (parsed.city or parsed.zip):
        tiers.append(
            SearchTier.build(
                TierKind.RELAXED,
                streetName=parsed.street_name,
                city=parsed.city,
                zip=parsed.zip,
            )
        )

    search = (full_address or "").strip()
    if search:
        tiers.append(SearchTier.build(TierKind.FREE_TEXT, search=search))

    if parsed.zip:
        tiers.append(SearchTier.build(TierKind.ZIP_ONLY, zip=parsed.zip))

    return tiers


def build_fallbacks(
    full_address: Optional[str],
    suffixes: Sequence[str] = STREET_SUFFIXES,
) -> List[SearchTier]:
    parsed = parse_address(full_address, suffixes)
    return tiers_for(parsed, full_address or "")
