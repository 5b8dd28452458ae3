from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import DEFAULT_PHOTO_CDN


SQFT_PER_ACRE = 43560
DEFAULT_STATE = "TX"

_SINGLE_PHOTO_FIELDS = ("photo", "imageUrl", "primaryPhoto", "coverPhoto")


@dataclass(frozen=True)
class Candidate:
    """A provider listing normalized into a fixed schema.

    Built fresh per request from raw payloads; scoring and ranking only ever
    see this shape.
    """

    mls_number: str
    address: str = ""
    street_address: str = ""
    street_number: str = ""
    street_name: str = ""
    street_suffix: str = ""
    city: str = ""
    state: str = DEFAULT_STATE
    zip: str = ""

    list_price: float = 0
    sold_price: Optional[float] = None
    beds: float = 0
    baths: float = 0
    sqft: float = 0
    lot_size_acres: Optional[float] = None
    year_built: Optional[int] = None
    property_type: str = ""

    status: str = ""
    list_date: str = ""
    sold_date: Optional[str] = None
    days_on_market: int = 0

    photos: Tuple[str, ...] = field(default_factory=tuple)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    subdivision: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mlsNumber": self.mls_number,
            "address": self.address,
            "streetAddress": self.street_address,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "listPrice": self.list_price,
            "soldPrice": self.sold_price,
            "beds": self.beds,
            "baths": self.baths,
            "sqft": self.sqft,
            "lotSizeAcres": self.lot_size_acres,
            "yearBuilt": self.year_built,
            "propertyType": self.property_type,
            "status": self.status,
            "listDate": self.list_date,
            "soldDate": self.sold_date,
            "daysOnMarket": self.days_on_market,
            "photos": list(self.photos),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "subdivision": self.subdivision,
        }


def _first(*values: Any) -> Any:
    # Provider fields are falsy when absent ("" / 0 / None); first truthy wins.
    for value in values:
        if value:
            return value
    return None


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(str(value).replace(",", "").strip())
    except ValueError:
        return None
    # "NaN" and "Infinity" parse but cannot be serialized.
    return f if math.isfinite(f) else None


def _to_int(value: Any) -> Optional[int]:
    f = _to_float(value)
    if f is None:
        return None
    return int(f)


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_photo_url(img: Any, cdn_base: str = DEFAULT_PHOTO_CDN) -> Optional[str]:
    if not img:
        return None
    if isinstance(img, dict):
        img = _first(img.get("url"), img.get("src"), img.get("href"))
    if not isinstance(img, str) or not img.strip():
        return None
    path = img.strip()
    if path.startswith("http://") or path.startswith("https://"):
        return path
    base = cdn_base.rstrip("/")
    if path.startswith("/"):
        return f"{base}{path}"
    return f"{base}/{path}"


def extract_photos(raw: Dict[str, Any], cdn_base: str = DEFAULT_PHOTO_CDN) -> List[str]:
    """Photo URLs in provider priority order: images[], photos[], single fields."""

    for key in ("images", "photos"):
        items = raw.get(key)
        if isinstance(items, list) and items:
            urls = [u for u in (normalize_photo_url(i, cdn_base) for i in items) if u]
            if urls:
                return urls

    for key in _SINGLE_PHOTO_FIELDS:
        url = normalize_photo_url(raw.get(key), cdn_base)
        if url:
            return [url]

    # Older sold listings often carry no photos at all.
    return []


def candidate_from_payload(raw: Any, cdn_base: str = DEFAULT_PHOTO_CDN) -> Candidate:
    if not isinstance(raw, dict):
        raise ValueError(f"listing payload must be an object, got {type(raw).__name__}")

    address = _dict(raw.get("address"))
    details = _dict(raw.get("details"))
    lot = _dict(raw.get("lot"))
    geo = _dict(raw.get("map"))
    timestamps = _dict(raw.get("timestamps"))

    street_number = _to_str(address.get("streetNumber"))
    street_name = _to_str(address.get("streetName"))
    street_suffix = _to_str(address.get("streetSuffix"))
    city = _to_str(address.get("city"))
    state = _to_str(address.get("state")) or DEFAULT_STATE
    postal_code = _to_str(_first(address.get("zip"), address.get("postalCode")))
    street_address = " ".join(p for p in (street_number, street_name, street_suffix) if p)
    locality = " ".join(p for p in (state, postal_code) if p)
    full_address = ", ".join(p for p in (street_address, city, locality) if p)

    lot_acres = _to_float(lot.get("acres"))
    if not lot_acres:
        lot_area = _to_float(raw.get("lotSizeArea"))
        lot_acres = lot_area / SQFT_PER_ACRE if lot_area else None

    return Candidate(
        mls_number=_to_str(_first(raw.get("mlsNumber"), raw.get("listingId"))),
        address=full_address,
        street_address=street_address,
        street_number=street_number,
        street_name=street_name,
        street_suffix=street_suffix,
        city=city,
        state=state,
        zip=postal_code,
        list_price=_to_float(raw.get("listPrice")) or 0,
        sold_price=_to_float(_first(raw.get("soldPrice"), raw.get("closePrice"))),
        beds=_to_float(_first(details.get("numBedrooms"), raw.get("bedroomsTotal"))) or 0,
        baths=_to_float(_first(details.get("numBathrooms"), raw.get("bathroomsTotal"))) or 0,
        sqft=_to_float(_first(details.get("sqft"), raw.get("livingArea"))) or 0,
        lot_size_acres=lot_acres,
        year_built=_to_int(details.get("yearBuilt")),
        property_type=_to_str(
            _first(details.get("style"), details.get("propertyType"), raw.get("propertyType"))
        ),
        status=_to_str(_first(raw.get("standardStatus"), raw.get("status"))),
        list_date=_to_str(raw.get("listDate")),
        sold_date=_to_str(_first(raw.get("soldDate"), raw.get("closeDate"))) or None,
        days_on_market=_to_int(
            _first(raw.get("daysOnMarket"), raw.get("dom"), timestamps.get("dom"))
        )
        or 0,
        photos=tuple(extract_photos(raw, cdn_base)),
        latitude=_to_float(_first(geo.get("latitude"), address.get("latitude"))),
        longitude=_to_float(_first(geo.get("longitude"), address.get("longitude"))),
        subdivision=_to_str(_first(address.get("neighborhood"), address.get("area"))),
    )
