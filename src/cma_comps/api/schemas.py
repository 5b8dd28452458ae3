from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..comps.listing import Candidate
from ..comps.scoring import SubjectProperty
from ..config import MAX_SOLD_DAYS
from ..providers.base import DEFAULT_STATUSES, normalize_statuses


CRITERIA_FIELDS = (
    "city",
    "zip",
    "county",
    "min_beds",
    "min_baths",
    "min_price",
    "max_price",
    "property_type",
    "min_sqft",
    "max_sqft",
    "min_year_built",
    "max_year_built",
)


def _lenient_number(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


class SubjectPropertyIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lat: Optional[float] = Field(default=None, validation_alias=AliasChoices("lat", "latitude"))
    lon: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lon", "lng", "longitude")
    )
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[float] = None
    property_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("propertyType", "property_type")
    )

    @field_validator("lat", "lon", "beds", "baths", "sqft", mode="before")
    @classmethod
    def _numbers(cls, value: Any) -> Optional[float]:
        return _lenient_number(value)

    def to_subject(self) -> SubjectProperty:
        return SubjectProperty(
            latitude=self.lat,
            longitude=self.lon,
            beds=self.beds,
            baths=self.baths,
            sqft=self.sqft,
            property_type=self.property_type or None,
        )


class ComparableSearchRequest(BaseModel):
    """Inbound comparable search.

    Out-of-range values are clamped or defaulted rather than rejected.
    """

    model_config = ConfigDict(populate_by_name=True)

    search: Optional[str] = None
    subject_property: Optional[SubjectPropertyIn] = Field(default=None, alias="subjectProperty")
    statuses: List[str] = Field(default_factory=lambda: list(DEFAULT_STATUSES))
    date_sold_days: Optional[int] = Field(default=None, alias="dateSoldDays")
    limit: Optional[int] = None
    page: int = 1

    city: Optional[str] = None
    zip: Optional[str] = None
    county: Optional[str] = None
    min_beds: Optional[float] = Field(default=None, alias="minBeds")
    min_baths: Optional[float] = Field(default=None, alias="minBaths")
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    property_type: Optional[str] = Field(default=None, alias="propertyType")
    min_sqft: Optional[float] = Field(default=None, alias="minSqft")
    max_sqft: Optional[float] = Field(default=None, alias="maxSqft")
    min_year_built: Optional[int] = Field(default=None, alias="minYearBuilt")
    max_year_built: Optional[int] = Field(default=None, alias="maxYearBuilt")
    mls_numbers: Optional[List[str]] = Field(default=None, alias="mlsNumbers")

    @field_validator("statuses", mode="before")
    @classmethod
    def _statuses(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            value = None
        return normalize_statuses(value)

    @field_validator("date_sold_days", mode="before")
    @classmethod
    def _sold_days(cls, value: Any) -> Optional[int]:
        # Unset or unusable values fall back to the configured default.
        n = _lenient_number(value)
        if n is None or n < 1:
            return None
        return min(int(n), MAX_SOLD_DAYS)

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, value: Any) -> Optional[int]:
        n = _lenient_number(value)
        return None if n is None else int(n)

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, value: Any) -> int:
        n = _lenient_number(value)
        return 1 if n is None else max(1, int(n))

    @field_validator(
        "min_beds",
        "min_baths",
        "min_price",
        "max_price",
        "min_sqft",
        "max_sqft",
        mode="before",
    )
    @classmethod
    def _criteria_numbers(cls, value: Any) -> Optional[float]:
        return _lenient_number(value)

    @field_validator("min_year_built", "max_year_built", mode="before")
    @classmethod
    def _criteria_years(cls, value: Any) -> Optional[int]:
        n = _lenient_number(value)
        return None if n is None else int(n)

    @field_validator("mls_numbers", mode="before")
    @classmethod
    def _mls_numbers(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        out = [str(v).strip() for v in value if str(v or "").strip()]
        return out or None

    @property
    def search_text(self) -> str:
        return (self.search or "").strip()

    def is_address_search(self) -> bool:
        return bool(self.search_text) and not self.mls_numbers

    def has_criteria(self) -> bool:
        if self.mls_numbers:
            return True
        for name in CRITERIA_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
            if value not in (None, ""):
                return True
        return False

    def subject(self) -> Optional[SubjectProperty]:
        if self.subject_property is None:
            return None
        return self.subject_property.to_subject()


class ListingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mls_number: str = Field(alias="mlsNumber")
    address: str = ""
    street_address: str = Field(default="", alias="streetAddress")
    city: str = ""
    state: str = ""
    zip: str = ""
    list_price: float = Field(default=0, alias="listPrice")
    sold_price: Optional[float] = Field(default=None, alias="soldPrice")
    beds: float = 0
    baths: float = 0
    sqft: float = 0
    lot_size_acres: Optional[float] = Field(default=None, alias="lotSizeAcres")
    year_built: Optional[int] = Field(default=None, alias="yearBuilt")
    property_type: str = Field(default="", alias="propertyType")
    status: str = ""
    list_date: str = Field(default="", alias="listDate")
    sold_date: Optional[str] = Field(default=None, alias="soldDate")
    days_on_market: int = Field(default=0, alias="daysOnMarket")
    photos: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    subdivision: str = ""
    distance_from_subject: Optional[float] = Field(default=None, alias="distanceFromSubject")

    @classmethod
    def from_candidate(
        cls, candidate: Candidate, distance: Optional[float] = None
    ) -> "ListingOut":
        payload = candidate.to_dict()
        if distance is not None:
            payload["distanceFromSubject"] = round(distance, 2)
        return cls.model_validate(payload)


class ComparableSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listings: List[ListingOut] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = Field(default=0, alias="totalPages")
    results_per_page: int = Field(default=0, alias="resultsPerPage")
    message: Optional[str] = None
    address_parsed: Optional[bool] = Field(default=None, alias="addressParsed")
    search_strategy: Optional[str] = Field(default=None, alias="searchStrategy")
    parsed_address: Optional[Dict[str, str]] = Field(default=None, alias="parsedAddress")

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape: camelCase keys, unset top-level extras omitted."""

        payload = self.model_dump(by_alias=True)
        payload["listings"] = [
            {k: v for k, v in item.items() if k != "distanceFromSubject" or v is not None}
            for item in payload["listings"]
        ]
        for key in ("message", "addressParsed", "searchStrategy", "parsedAddress"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload
