"""
Normalizer - converts provider payloads or hand-entered fields into the
canonical essential data of a media kind, pruned of empty values.
"""
import math
from typing import Any, Dict, List, Optional

from constants import (
    COMMON_FIELDS,
    FIELD_ALIASES,
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    KIND_FIELDS,
    MEDIA_KINDS,
    PROVIDER_ALIASES,
    PROVIDERS,
    STRING_LIST_FIELDS,
)
from exceptions import UnsupportedKindException, ValidationException


def ensure_media_kind(media_kind) -> str:
    kind = str(media_kind or "").strip().lower()
    if kind not in MEDIA_KINDS:
        raise UnsupportedKindException(media_kind)
    return kind


def canonical_provider(provider) -> str:
    name = str(provider or "").strip().lower()
    name = PROVIDER_ALIASES.get(name, name)
    if name not in PROVIDERS:
        raise ValidationException("Unknown provider", details={"provider": f"unknown provider '{provider}'"})
    return name


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def prune_essential_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty values. title is always kept; releasePeriod needs a year."""
    pruned = {}
    for key, value in data.items():
        if key == "title":
            pruned[key] = value
            continue
        if key == "releasePeriod" and (not isinstance(value, dict) or value.get("year") is None):
            continue
        if is_empty(value):
            continue
        pruned[key] = value
    return pruned


def _to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
        return int(number) if math.isfinite(number) else None
    except (TypeError, ValueError, OverflowError):
        return None


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def normalize_genres(genres) -> List[Dict[str, Any]]:
    """Genres become {"id"?, "name"}; entries without a name are dropped"""
    if not isinstance(genres, (list, tuple)):
        return []

    normalized = []
    for genre in genres:
        if isinstance(genre, str):
            name = genre.strip()
            if name:
                normalized.append({"name": name})
        elif isinstance(genre, dict):
            name = str(genre.get("name") or "").strip()
            if not name:
                continue
            item = {"name": name}
            if genre.get("id") not in (None, ""):
                item["id"] = str(genre["id"])
            normalized.append(item)
    return normalized


def normalize_release_period(period) -> Optional[Dict[str, int]]:
    if not isinstance(period, dict):
        return None
    year = _to_int(period.get("year"))
    if year is None:
        return None
    normalized = {"year": year}
    month = _to_int(period.get("month"))
    if month is not None and 1 <= month <= 12:
        normalized["month"] = month
    return normalized


def normalize_string_list(values) -> List[str]:
    if not isinstance(values, (list, tuple)):
        return []
    names = []
    for value in values:
        if isinstance(value, dict):
            value = value.get("name")
        if value is None:
            continue
        value = str(value).strip()
        if value:
            names.append(value)
    return names


def _normalize_field(field: str, value: Any) -> Any:
    if field == "genres":
        return normalize_genres(value)
    if field == "releasePeriod":
        return normalize_release_period(value)
    if field == "episodesPerSeason":
        if not isinstance(value, (list, tuple)):
            return None
        return [count for count in (_to_int(v) for v in value) if count is not None]
    if field in INTEGER_FIELDS:
        return _to_int(value)
    if field in FLOAT_FIELDS:
        return _to_float(value)
    if field in STRING_LIST_FIELDS:
        return normalize_string_list(value)
    if field == "status":
        return str(value).strip().lower() if value is not None else None
    if isinstance(value, str):
        return value.strip()
    return value


def normalize_essential_data(raw: Optional[Dict[str, Any]], media_kind: str) -> Dict[str, Any]:
    """
    Canonical essential data for media_kind.

    Alias keys (imageUrl, apiRating, ...) are mapped onto their canonical
    names, fields that do not belong to the kind are never copied and
    empty values are pruned.
    """
    media_kind = ensure_media_kind(media_kind)
    raw = dict(raw or {})

    for alias, canonical in FIELD_ALIASES.items():
        if alias in raw and is_empty(raw.get(canonical)):
            raw[canonical] = raw[alias]

    title = raw.get("title")
    data = {"title": title.strip() if isinstance(title, str) else ("" if title is None else str(title))}

    for field in COMMON_FIELDS + KIND_FIELDS[media_kind]:
        if field == "title":
            continue
        data[field] = _normalize_field(field, raw.get(field))

    period = data.get("releasePeriod")
    if data.get("releaseYear") is None and period:
        data["releaseYear"] = period["year"]

    return prune_essential_data(data)
