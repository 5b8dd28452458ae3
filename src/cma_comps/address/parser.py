"""Free-text address parsing.

Turns strings like "2402 Rockingham Cir, Austin, TX 78704" into the discrete
street/city/state/zip fields the listings provider can search on. Parsing is
best-effort: anything that cannot be recovered is left as ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from ..normalize import blank_to_none


# Bump when the vocabulary changes so callers caching parse results can
# invalidate them.
SUFFIX_VOCABULARY_VERSION = 1

STREET_SUFFIXES: Tuple[str, ...] = (
    "St", "Street", "Ave", "Avenue", "Blvd", "Boulevard", "Dr", "Drive",
    "Rd", "Road", "Ln", "Lane", "Ct", "Court", "Pl", "Place", "Cir", "Circle",
    "Way", "Pkwy", "Parkway", "Trl", "Trail", "Path", "Pass", "Loop", "Bend",
    "Ridge", "Hill", "Creek", "Run", "Ter", "Terrace", "Sq", "Square", "Plaza",
    "Alley", "Walk", "Commons", "Green",
)

_STATE_ZIP_RE = re.compile(r"([A-Z]{2})\s+(\d{5}(?:-\d{4})?)$")
_STREET_NUMBER_RE = re.compile(r"^(\d+[A-Za-z]?)")
_STREET_NUMBER_PREFIX_RE = re.compile(r"^\d+[A-Za-z]?\s*")

_suffix_patterns: Dict[Tuple[str, ...], "re.Pattern[str]"] = {}


def _suffix_pattern(suffixes: Sequence[str]) -> "re.Pattern[str]":
    key = tuple(suffixes)
    pattern = _suffix_patterns.get(key)
    if pattern is None:
        alternation = "|".join(re.escape(s) for s in key)
        pattern = re.compile(rf"\b({alternation})\b", re.IGNORECASE)
        _suffix_patterns[key] = pattern
    return pattern


@dataclass(frozen=True)
class ParsedAddress:
    street_number: Optional[str] = None
    street_name: Optional[str] = None
    street_suffix: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.street_number,
                self.street_name,
                self.street_suffix,
                self.city,
                self.state,
                self.zip,
            )
        )

    def to_dict(self) -> Dict[str, str]:
        payload = {
            "streetNumber": self.street_number,
            "streetName": self.street_name,
            "streetSuffix": self.street_suffix,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }
        return {k: v for k, v in payload.items() if v is not None}


def parse_street_address(
    street: Optional[str],
    suffixes: Sequence[str] = STREET_SUFFIXES,
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Split "123B Main St" into ("123B", "Main", "St").

    Only the text before the first suffix token is kept as the street name;
    anything after it (unit numbers, directionals) is dropped.
    """

    street = (street or "").strip()
    if not street:
        return None, None, None

    m = _STREET_NUMBER_RE.match(street)
    number = m.group(1) if m else None
    remaining = _STREET_NUMBER_PREFIX_RE.sub("", street, count=1)

    name = remaining
    suffix = None
    if suffixes:
        sm = _suffix_pattern(suffixes).search(remaining)
        if sm:
            suffix = sm.group(1)
            name = remaining[: sm.start()]

    return blank_to_none(number), blank_to_none(name), blank_to_none(suffix)


def parse_address(
    full_address: Optional[str],
    suffixes: Sequence[str] = STREET_SUFFIXES,
) -> ParsedAddress:
    if not full_address or not full_address.strip():
        return ParsedAddress()

    address = full_address.strip()
    parts = [p.strip() for p in address.split(",")]

    if len(parts) < 2:
        number, name, suffix = parse_street_address(address, suffixes)
        return ParsedAddress(street_number=number, street_name=name, street_suffix=suffix)

    city_state_zip = parts[-1]
    state = None
    zip_code = None
    m = _STATE_ZIP_RE.search(city_state_zip)
    if m:
        state = m.group(1)
        zip_code = m.group(2)
        city = city_state_zip[: m.start()].strip()
        # "Street, City, ST 12345": the city sits in its own segment.
        if not city and len(parts) >= 3:
            city = parts[-2]
    else:
        city = city_state_zip

    number, name, suffix = parse_street_address(parts[0], suffixes)
    return ParsedAddress(
        street_number=number,
        street_name=name,
        street_suffix=suffix,
        city=blank_to_none(city),
        state=state,
        zip=zip_code,
    )
