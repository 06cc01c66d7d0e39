"""
Cache Service - shared metadata store keyed by (provider, external_id, media_kind)

- upsert: normalize + create or merge, fixed one day refresh window
- fetch_or_refresh: read-through with a lifecycle based refresh window,
  serving stale data when the provider fails
- acquire/release_reference: reference counting, manual records are
  evicted when nothing points at them
- purge: age based bulk delete of unreferenced records
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError

from constants import (
    LIFECYCLE_FINISHED,
    LIFECYCLE_ONGOING,
    LIFECYCLE_ONGOING_VALUES,
    LIFECYCLE_TTL_SECONDS,
    LIFECYCLE_UPCOMING,
    LIFECYCLE_UPCOMING_VALUES,
    MERGE_TTL_SECONDS,
    PROVIDER_MANUAL,
    STICKY_FIELDS,
)
from exceptions import NotFoundException, UpstreamFetchException, ValidationException
from models.cache_record import CacheRecord
from providers import get_provider_adapter
from repositories.cache_record_repository import CacheRecordRepository
from services.normalizer import canonical_provider, ensure_media_kind, is_empty, normalize_essential_data
from settings import load_settings
from utils import generate_manual_id, now_utc

logger = structlog.get_logger("cache")

SOURCE_CACHE = "cache"
SOURCE_PROVIDER = "provider"
SOURCE_STALE = "stale"


def classify_lifecycle(status) -> str:
    value = str(status or "").strip().lower()
    if value in LIFECYCLE_ONGOING_VALUES:
        return LIFECYCLE_ONGOING
    if value in LIFECYCLE_UPCOMING_VALUES:
        return LIFECYCLE_UPCOMING
    return LIFECYCLE_FINISHED


def compute_next_fetch(essential_data: Dict[str, Any], now=None) -> Tuple[Any, int]:
    """(next_fetch, ttl_seconds) for freshly fetched provider data"""
    now = now or now_utc()
    ttl_seconds = LIFECYCLE_TTL_SECONDS[classify_lifecycle((essential_data or {}).get("status"))]
    return now + timedelta(seconds=ttl_seconds), ttl_seconds


def merge_essential_data(old: Optional[Dict[str, Any]], new: Dict[str, Any]) -> Dict[str, Any]:
    """New fields replace old ones; old sticky fields survive when new omits them"""
    merged = dict(new)
    for field in STICKY_FIELDS:
        if field not in merged and not is_empty((old or {}).get(field)):
            merged[field] = old[field]
    return merged


def _validate_key(provider, external_id, media_kind, raw_essential_data) -> Tuple[str, str, str]:
    errors = {}
    if is_empty(provider):
        errors["provider"] = "required"
    if is_empty(media_kind):
        errors["media_kind"] = "required"
    title = (raw_essential_data or {}).get("title") if isinstance(raw_essential_data, dict) else None
    if is_empty(title) or not isinstance(title, str):
        errors["essential_data.title"] = "required"
    if errors:
        raise ValidationException("Missing required fields", details=errors)

    provider = canonical_provider(provider)
    if is_empty(external_id):
        if provider != PROVIDER_MANUAL:
            raise ValidationException("Missing required fields", details={"external_id": "required"})
        external_id = generate_manual_id()
    return provider, str(external_id).strip(), ensure_media_kind(media_kind)


def _merge_into(record: CacheRecord, data: Dict[str, Any], now, next_fetch, ttl_seconds, from_provider: bool):
    counters = {"access_count": 1}
    if from_provider:
        counters["fetch_count"] = 1

    CacheRecordRepository.increment(
        record.id,
        counters,
        essential_data=merge_essential_data(record.essential_data, data),
        last_fetched=now,
        next_fetch=next_fetch,
        ttl_seconds=ttl_seconds,
        last_accessed=now,
        updated_at=now,
    )
    logger.info("cache_record_merged", cache_record_id=record.id, provider=record.provider,
                external_id=record.external_id, media_kind=record.media_kind)
    return CacheRecordRepository.get_by_id(record.id)


def upsert(provider, external_id, media_kind, raw_essential_data, next_fetch=None, ttl_seconds=None,
           from_provider: bool = False, now=None) -> Tuple[CacheRecord, bool]:
    """
    Create or merge the cache record for a key. Returns (record, was_cached).

    Without an explicit window the record is considered fresh for one day.
    now stamps last_fetched, so a window computed from the same now stays exact.
    """
    provider, external_id, media_kind = _validate_key(provider, external_id, media_kind, raw_essential_data)
    data = normalize_essential_data(raw_essential_data, media_kind)

    now = now or now_utc()
    if next_fetch is None:
        ttl_seconds = MERGE_TTL_SECONDS
        next_fetch = now + timedelta(seconds=ttl_seconds)

    existing = CacheRecordRepository.get_by_key(provider, external_id, media_kind)
    if existing:
        return _merge_into(existing, data, now, next_fetch, ttl_seconds, from_provider), True

    try:
        record = CacheRecordRepository.create(
            provider=provider,
            external_id=external_id,
            media_kind=media_kind,
            essential_data=data,
            last_fetched=now,
            next_fetch=next_fetch,
            ttl_seconds=ttl_seconds,
            fetch_count=1,
            error_count=0,
            reference_count=0,
            last_accessed=now,
            access_count=1,
            created_at=now,
            updated_at=now,
        )
    except IntegrityError:
        # Another request created the same key in between
        existing = CacheRecordRepository.get_by_key(provider, external_id, media_kind)
        if existing is None:
            raise
        return _merge_into(existing, data, now, next_fetch, ttl_seconds, from_provider), True

    logger.info("cache_record_created", cache_record_id=record.id, provider=provider,
                external_id=external_id, media_kind=media_kind)
    return record, False


def touch(record: CacheRecord) -> CacheRecord:
    """Bump access statistics of a record that is being served"""
    CacheRecordRepository.increment(record.id, {"access_count": 1}, last_accessed=now_utc())
    return CacheRecordRepository.get_by_id(record.id)


def read(provider, external_id, media_kind) -> CacheRecord:
    """Stored record for a key, 404 when absent. Bumps access stats."""
    errors = {}
    for field, value in (("provider", provider), ("external_id", external_id), ("media_kind", media_kind)):
        if is_empty(value):
            errors[field] = "required"
    if errors:
        raise ValidationException("Missing required fields", details=errors)

    provider = canonical_provider(provider)
    media_kind = ensure_media_kind(media_kind)
    external_id = str(external_id).strip()
    record = CacheRecordRepository.get_by_key(provider, external_id, media_kind)
    if record is None:
        raise NotFoundException("Cache record", f"{provider}/{media_kind}/{external_id}")
    return touch(record)


def get_record(cache_record_id) -> CacheRecord:
    record = CacheRecordRepository.get_by_id(cache_record_id)
    if record is None:
        raise NotFoundException("Cache record", cache_record_id)
    return record


def fetch_or_refresh(provider, external_id, media_kind, adapter=None) -> Tuple[CacheRecord, str]:
    """
    Read-through fetch. Returns (record, source) where source is
    "cache", "provider" or "stale".
    """
    provider = canonical_provider(provider)
    media_kind = ensure_media_kind(media_kind)
    external_id = str(external_id).strip()

    record = CacheRecordRepository.get_by_key(provider, external_id, media_kind)
    now = now_utc()

    if record is not None and (record.is_manual or record.is_fresh(now)):
        return touch(record), SOURCE_CACHE

    if provider == PROVIDER_MANUAL:
        raise NotFoundException("Cache record", f"{provider}/{media_kind}/{external_id}")

    adapter = adapter or get_provider_adapter(provider)
    try:
        adapter.require_kind(media_kind)
        raw = adapter.get_by_id(external_id, media_kind)
        data = normalize_essential_data(adapter.to_essential(raw, media_kind), media_kind)
        if is_empty(data.get("title")):
            raise UpstreamFetchException(provider, "provider returned an item without a title")
    except UpstreamFetchException:
        if record is None:
            logger.error("upstream_fetch_failed", provider=provider, external_id=external_id,
                         media_kind=media_kind)
            raise
        CacheRecordRepository.increment(record.id, {"error_count": 1, "access_count": 1}, last_accessed=now)
        logger.warning("serving_stale_cache_record", cache_record_id=record.id, provider=provider,
                       external_id=external_id, media_kind=media_kind)
        return CacheRecordRepository.get_by_id(record.id), SOURCE_STALE

    next_fetch, ttl_seconds = compute_next_fetch(data, now)
    record, _ = upsert(provider, external_id, media_kind, data, next_fetch=next_fetch,
                       ttl_seconds=ttl_seconds, from_provider=True, now=now)
    return record, SOURCE_PROVIDER


def search(provider, media_kind, query, adapter=None) -> List[Dict[str, Any]]:
    """Normalized previews from a provider search, each with its externalId"""
    provider = canonical_provider(provider)
    media_kind = ensure_media_kind(media_kind)
    query = (query or "").strip()
    if not query:
        return []

    adapter = adapter or get_provider_adapter(provider)
    adapter.require_kind(media_kind)

    previews = []
    for raw in adapter.search(query, media_kind):
        data = normalize_essential_data(adapter.to_essential(raw, media_kind), media_kind)
        data["externalId"] = adapter.external_id(raw)
        previews.append(data)
    logger.info("provider_search", provider=provider, media_kind=media_kind, results=len(previews))
    return previews


def acquire_reference(cache_record_id):
    CacheRecordRepository.increment(cache_record_id, {"reference_count": 1}, last_accessed=now_utc())


def release_reference(cache_record_id) -> bool:
    """
    Drop one reference. Manual records left without references are deleted;
    returns True when that happened.
    """
    CacheRecordRepository.increment(cache_record_id, {"reference_count": -1}, last_accessed=now_utc())
    record = CacheRecordRepository.get_by_id(cache_record_id)
    if record is None or not record.is_manual or record.reference_count > 0:
        return False

    deleted = CacheRecordRepository.delete_if_unreferenced_manual(cache_record_id)
    if deleted:
        logger.info("manual_cache_record_evicted", cache_record_id=cache_record_id)
    return deleted


def purge(media_kind, older_than_days=None) -> int:
    """Delete unreferenced records of a kind not accessed for older_than_days"""
    media_kind = ensure_media_kind(media_kind)
    if older_than_days is None:
        older_than_days = load_settings()["cache"]["purge_days"]
    try:
        older_than_days = int(older_than_days)
    except (TypeError, ValueError):
        raise ValidationException("Invalid purge age", details={"days": "must be an integer"})
    if older_than_days < 0:
        raise ValidationException("Invalid purge age", details={"days": "must not be negative"})

    cutoff = now_utc() - timedelta(days=older_than_days)
    deleted_count = CacheRecordRepository.purge(media_kind, cutoff)
    logger.info("cache_purged", media_kind=media_kind, older_than_days=older_than_days,
                deleted_count=deleted_count)
    return deleted_count
