"""
Field mapping — from a source's raw shape to the CanonicalRecord.

Each canonical field has an ordered list of candidate paths. The document
table covers the embedded page payloads (detail-page property objects and
search-result entries); the API table puts the API's own spellings first.

Derived fields:
  - zestimateLow/High: explicit fields, else a ±percentage band around the
    point valuation.
  - lastSoldPrice/Date: explicit fields, else the first "sold" event in the
    price history.
  - zestimate/zpid: a regex rescue over the full fetched document when no
    structured path matched.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from .models import CanonicalRecord, PriceHistoryEntry, RawCandidate, SourceKind
from .paths import (
    coerce_str,
    extract,
    extract_bool,
    extract_float,
    extract_int,
    extract_list,
    extract_numeric_fallback,
    extract_str,
    extract_str_list,
)

logger = logging.getLogger(__name__)

# ─── Path Tables ─────────────────────────────────────────────────────

DOCUMENT_FIELD_PATHS: dict[str, tuple[str, ...]] = {
    "zpid": ("zpid", "hdpData.homeInfo.zpid", "id"),
    "homeType": ("homeType", "resoFacts.homeType", "hdpData.homeInfo.homeType", "propertyType"),
    "homeStatus": ("homeStatus", "hdpData.homeInfo.homeStatus", "statusType"),
    "yearBuilt": ("yearBuilt", "resoFacts.yearBuilt"),
    "lotSize": ("lotSize", "lotAreaValue", "resoFacts.lotSize", "hdpData.homeInfo.lotAreaValue"),
    "livingArea": ("livingArea", "livingAreaValue", "resoFacts.livingArea", "area", "hdpData.homeInfo.livingArea"),
    "numBedrooms": ("bedrooms", "resoFacts.bedrooms", "beds", "hdpData.homeInfo.bedrooms"),
    "numBathrooms": ("bathrooms", "resoFacts.bathrooms", "baths", "hdpData.homeInfo.bathrooms"),
    "numFloors": ("resoFacts.stories", "stories", "resoFacts.levels"),
    "numParkingSpaces": ("resoFacts.parkingCapacity", "parkingCapacity", "resoFacts.coveredParkingCapacity"),
    "parking": ("resoFacts.parking", "parking", "resoFacts.parkingType"),
    "parkingFeatures": ("resoFacts.parkingFeatures", "parkingFeatures"),
    "garageSpaces": ("resoFacts.garageParkingCapacity", "resoFacts.garageSpaces", "garageSpaces"),
    "pool": ("resoFacts.hasPrivatePool", "resoFacts.hasPool", "hasPool", "pool"),
    "roofType": ("resoFacts.roofType", "roofType"),
    "sewer": ("resoFacts.sewer", "sewer"),
    "water": ("resoFacts.waterSource", "resoFacts.water", "water"),
    "county": ("county", "address.county", "countyName"),
    "zestimate": ("zestimate", "hdpData.homeInfo.zestimate", "price.zestimate"),
    "zestimateLow": ("zestimateLow", "zestimateRange.low", "valueRange.low"),
    "zestimateHigh": ("zestimateHigh", "zestimateRange.high", "valueRange.high"),
    "zestimateLowPercent": ("zestimateLowPercent", "zestimateRange.lowPercent"),
    "zestimateHighPercent": ("zestimateHighPercent", "zestimateRange.highPercent"),
    "rentZestimate": ("rentZestimate", "hdpData.homeInfo.rentZestimate"),
    "lastSoldPrice": ("lastSoldPrice", "lastSold.price"),
    "lastSoldDate": ("lastSoldDate", "dateSold", "lastSold.date", "hdpData.homeInfo.dateSold"),
    "monthlyHoaFee": ("monthlyHoaFee", "resoFacts.hoaFee", "hoaFee"),
    "taxAnnualAmount": ("taxAnnualAmount", "resoFacts.taxAnnualAmount"),
    "taxAssessedValue": ("taxAssessedValue", "resoFacts.taxAssessedValue"),
    "priceHistory": ("priceHistory", "history", "priceHistory.items"),
    "imgSrc": ("imgSrc", "hiResImageLink", "desktopWebHdpImageLink", "image"),
    "photos": ("photos", "responsivePhotos", "originalPhotos", "images"),
    "property_url": ("hdpUrl", "detailUrl", "url"),
}

API_FIELD_PATHS: dict[str, tuple[str, ...]] = {
    **DOCUMENT_FIELD_PATHS,
    "zpid": ("zpid", "property.zpid", "id", "propertyId"),
    "homeType": ("homeType", "propertyType", "resoFacts.homeType"),
    "numBedrooms": ("bedrooms", "beds", "resoFacts.bedrooms"),
    "numBathrooms": ("bathrooms", "baths", "resoFacts.bathrooms"),
    "zestimate": ("zestimate", "price.zestimate", "estimate.value", "valuation"),
    "zestimateLow": ("zestimateLow", "estimate.low", "valueRange.low", "zestimateRange.low"),
    "zestimateHigh": ("zestimateHigh", "estimate.high", "valueRange.high", "zestimateRange.high"),
    "rentZestimate": ("rentZestimate", "rent.estimate", "rentEstimate"),
}

_HISTORY_EVENT_PATHS = ("event", "type", "eventType", "eventDescription")
_HISTORY_DATE_PATHS = ("date", "eventDate", "time")
_HISTORY_PRICE_PATHS = ("price", "amount", "value")
_PHOTO_URL_PATHS = ("url", "mixedSources.jpeg.0.url", "mixedSources.webp.0.url", "href", "src")

# Epoch timestamps above this are milliseconds (year 1973+ in ms).
_EPOCH_MS_THRESHOLD = 10**11
# Anything past 2100-01-01 is not a real event date.
_EPOCH_MAX_SECONDS = 4_102_444_800
# Digit strings read as epochs: seconds (10) or milliseconds (13). "20190315" is not one.
_EPOCH_DIGIT_LENGTHS = (10, 13)


# ─── Public API ──────────────────────────────────────────────────────


def map_candidate(
    candidate: RawCandidate,
    kind: SourceKind,
    *,
    document: RawCandidate | None = None,
    property_url: str | None = None,
    base_url: str | None = None,
) -> CanonicalRecord:
    """Map an accepted candidate into the canonical schema.

    Args:
        candidate: The accepted raw record.
        kind: Which kind of source produced it (selects the path table).
        document: The full fetched blob, used only for numeric rescue scans.
        property_url: The page the record was read from, if known.
        base_url: Base for making relative property URLs absolute.
    """
    paths = API_FIELD_PATHS if kind == SourceKind.API else DOCUMENT_FIELD_PATHS

    zestimate = extract_int(candidate, paths["zestimate"])
    if zestimate is None and document is not None:
        zestimate = extract_numeric_fallback(document, "zestimate", (4, 9))
        if zestimate is not None:
            logger.info("zestimate recovered by fallback scan: %s", zestimate)

    zpid = extract_int(candidate, paths["zpid"])
    if zpid is None and document is not None:
        zpid = extract_numeric_fallback(document, "zpid", (4, 12))

    history = _price_history(candidate, paths["priceHistory"])
    low, high = _valuation_range(candidate, paths, zestimate)
    sold_price, sold_date = _last_sold(candidate, paths, history)

    return CanonicalRecord(
        zpid=zpid,
        homeType=extract_str(candidate, paths["homeType"]),
        homeStatus=extract_str(candidate, paths["homeStatus"]),
        yearBuilt=extract_int(candidate, paths["yearBuilt"]),
        lotSize=extract_float(candidate, paths["lotSize"]),
        livingArea=extract_int(candidate, paths["livingArea"]),
        numBedrooms=extract_int(candidate, paths["numBedrooms"]),
        numBathrooms=extract_float(candidate, paths["numBathrooms"]),
        numFloors=extract_int(candidate, paths["numFloors"]),
        numParkingSpaces=extract_int(candidate, paths["numParkingSpaces"]),
        parking=extract_str(candidate, paths["parking"]),
        parkingFeatures=extract_str_list(candidate, paths["parkingFeatures"]),
        garageSpaces=extract_int(candidate, paths["garageSpaces"]),
        pool=extract_bool(candidate, paths["pool"]),
        roofType=extract_str(candidate, paths["roofType"]),
        sewer=extract_str_list(candidate, paths["sewer"]),
        water=extract_str_list(candidate, paths["water"]),
        county=extract_str(candidate, paths["county"]),
        zestimate=zestimate,
        zestimateLow=low,
        zestimateHigh=high,
        rentZestimate=extract_int(candidate, paths["rentZestimate"]),
        taxAnnualAmount=extract_float(candidate, paths["taxAnnualAmount"]),
        taxAssessedValue=extract_int(candidate, paths["taxAssessedValue"]),
        monthlyHoaFee=extract_float(candidate, paths["monthlyHoaFee"]),
        lastSoldPrice=sold_price,
        lastSoldDate=sold_date,
        priceHistory=history,
        imgSrc=extract_str(candidate, paths["imgSrc"]),
        photos=_photos(candidate, paths["photos"]),
        property_url=property_url or _absolute(extract_str(candidate, paths["property_url"]), base_url),
    )


# ─── Derived Fields ──────────────────────────────────────────────────


def _valuation_range(
    candidate: RawCandidate, paths: dict[str, tuple[str, ...]], zestimate: int | None
) -> tuple[int | None, int | None]:
    """Explicit low/high when present, else a percentage band around the valuation."""
    low = extract_int(candidate, paths["zestimateLow"])
    high = extract_int(candidate, paths["zestimateHigh"])
    if zestimate is None:
        return low, high

    if low is None:
        pct = extract_float(candidate, paths["zestimateLowPercent"])
        if pct is not None:
            low = round(zestimate * (1 - pct / 100))
    if high is None:
        pct = extract_float(candidate, paths["zestimateHighPercent"])
        if pct is not None:
            high = round(zestimate * (1 + pct / 100))
    return low, high


def _last_sold(
    candidate: RawCandidate,
    paths: dict[str, tuple[str, ...]],
    history: list[PriceHistoryEntry] | None,
) -> tuple[int | None, str | None]:
    """Explicit last-sold fields, else the first "sold" event in the history."""
    price = extract_int(candidate, paths["lastSoldPrice"])
    sold_date = _format_date(extract(candidate, paths["lastSoldDate"]))
    if price is not None and sold_date is not None:
        return price, sold_date

    for entry in history or []:
        if entry.event and "sold" in entry.event.lower():
            return price or entry.price, sold_date or entry.date
    return price, sold_date


def _price_history(candidate: RawCandidate, paths: tuple[str, ...]) -> list[PriceHistoryEntry] | None:
    entries = extract_list(candidate, paths)
    if not entries:
        return None
    history = [
        PriceHistoryEntry(
            event=extract_str(item, _HISTORY_EVENT_PATHS),
            date=_format_date(extract(item, _HISTORY_DATE_PATHS)),
            price=extract_int(item, _HISTORY_PRICE_PATHS),
        )
        for item in entries
        if isinstance(item, dict)
    ]
    return history or None


def _photos(candidate: RawCandidate, paths: tuple[str, ...]) -> list[str] | None:
    entries = extract_list(candidate, paths)
    if not entries:
        return None
    urls: list[str] = []
    for entry in entries:
        url = coerce_str(entry) if isinstance(entry, str) else extract_str(entry, _PHOTO_URL_PATHS)
        if url and url not in urls:
            urls.append(url)
    return urls or None


def _format_date(value: Any) -> str | None:
    """ISO date for epoch timestamps (seconds or ms); other values as stripped strings.

    Numbers outside a plausible epoch range are kept as text, never raised on.
    """
    if isinstance(value, str) and value.strip().isdigit() and len(value.strip()) in _EPOCH_DIGIT_LENGTHS:
        value = int(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _epoch_date(value)
    return coerce_str(value)


def _epoch_date(value: int | float) -> str | None:
    seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
    if not 0 < seconds <= _EPOCH_MAX_SECONDS:
        return coerce_str(value)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()
    except (ValueError, OverflowError, OSError):
        return coerce_str(value)


def _absolute(url: str | None, base_url: str | None) -> str | None:
    if not url or url.startswith("http") or not base_url:
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"
