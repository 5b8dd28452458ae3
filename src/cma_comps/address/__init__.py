from .fallbacks import SearchTier, TierKind, build_fallbacks, tiers_for
from .parser import (
    STREET_SUFFIXES,
    SUFFIX_VOCABULARY_VERSION,
    ParsedAddress,
    parse_address,
    parse_street_address,
)

__all__ = [
    "STREET_SUFFIXES",
    "SUFFIX_VOCABULARY_VERSION",
    "ParsedAddress",
    "SearchTier",
    "TierKind",
    "build_fallbacks",
    "parse_address",
    "parse_street_address",
    "tiers_for",
]
