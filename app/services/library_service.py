"""
Library Service - per-user tracking records on top of the shared cache.

A LibraryService is built for one user per request and holds no other state.
"""
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError

from constants import (
    DEFAULT_PER_PAGE,
    LIBRARY_STATUSES,
    MAX_PER_PAGE,
    MEDIA_KINDS,
    NOTES_MAX_LENGTH,
    RATING_MAX,
    RATING_MIN,
    STATUS_PLANNED,
)
from exceptions import ConflictException, NotFoundException, ValidationException
from models.cache_record import CacheRecord
from models.library_entry import LibraryEntry
from repositories.cache_record_repository import CacheRecordRepository
from repositories.library_entry_repository import LibraryEntryRepository
from services import cache_service
from services.normalizer import canonical_provider, ensure_media_kind
from services.progress import apply_status_transition, build_initial_progress, merge_progress
from utils import ensure_utc, now_utc

logger = structlog.get_logger("library")

TIMESTAMP_FIELDS = ("started_at", "completed_at", "dropped_at")


def validate_status(status) -> str:
    value = str(status or "").strip().lower()
    if value not in LIBRARY_STATUSES:
        raise ValidationException("Invalid status", details={"status": f"must be one of {', '.join(LIBRARY_STATUSES)}"})
    return value


def validate_rating(rating) -> Optional[int]:
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or int(rating) != rating:
        raise ValidationException("Invalid rating", details={"user_rating": "must be an integer"})
    if not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationException("Invalid rating",
                                  details={"user_rating": f"must be between {RATING_MIN} and {RATING_MAX}"})
    return int(rating)


def validate_notes(notes) -> Optional[str]:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationException("Invalid notes", details={"personal_notes": "must be a string"})
    notes = notes.strip()
    if len(notes) > NOTES_MAX_LENGTH:
        raise ValidationException("Invalid notes",
                                  details={"personal_notes": f"must be at most {NOTES_MAX_LENGTH} characters"})
    return notes or None


def parse_timestamp(field: str, value):
    if value is None:
        return None
    parsed = ensure_utc(value)
    if parsed is None:
        raise ValidationException("Invalid timestamp", details={field: "must be an ISO 8601 datetime"})
    return parsed


class LibraryService:
    """Library operations scoped to one user"""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def _resolve_cache_record(self, cache_record_id=None, provider=None, external_id=None,
                              media_kind=None) -> CacheRecord:
        if cache_record_id is not None:
            record = CacheRecordRepository.get_by_id(cache_record_id)
            if record is None:
                raise NotFoundException("Cache record", cache_record_id)
            return record

        if provider and external_id and media_kind:
            key = (canonical_provider(provider), str(external_id), ensure_media_kind(media_kind))
            record = CacheRecordRepository.get_by_key(*key)
            if record is None:
                raise NotFoundException("Cache record", "/".join(key))
            return record

        raise ValidationException(
            "Missing cache record reference",
            details={"cache_record_id": "required (or provider, external_id and media_kind)"},
        )

    def get_entry(self, entry_id) -> LibraryEntry:
        entry = LibraryEntryRepository.get_for_user(entry_id, self.user_id)
        if entry is None:
            raise NotFoundException("Library entry", entry_id)
        return entry

    def list_entries(self, media_kind=None, status=None, page=1,
                     per_page=DEFAULT_PER_PAGE) -> Tuple[List[LibraryEntry], int]:
        if media_kind:
            media_kind = ensure_media_kind(media_kind)
        if status:
            status = validate_status(status)
        page = max(1, int(page or 1))
        per_page = min(max(1, int(per_page or DEFAULT_PER_PAGE)), MAX_PER_PAGE)
        return LibraryEntryRepository.list_for_user(self.user_id, media_kind, status, page, per_page)

    def add_entry(self, cache_record_id=None, status=None, user_rating=None, personal_notes=None,
                  progress=None, provider=None, external_id=None, media_kind=None) -> LibraryEntry:
        status = validate_status(status) if status is not None else STATUS_PLANNED
        user_rating = validate_rating(user_rating)
        personal_notes = validate_notes(personal_notes)

        record = self._resolve_cache_record(cache_record_id, provider, external_id, media_kind)
        if LibraryEntryRepository.get_by_user_and_cache_record(self.user_id, record.id):
            raise ConflictException("This title is already in your library")

        now = now_utc()
        entry = LibraryEntry(
            user_id=self.user_id,
            cache_record_id=record.id,
            media_kind=record.media_kind,
            status=STATUS_PLANNED,
            progress=build_initial_progress(record.media_kind, progress, now),
            user_rating=user_rating,
            personal_notes=personal_notes,
            created_at=now,
            updated_at=now,
        )
        apply_status_transition(entry, status, record.essential_data, now)

        try:
            LibraryEntryRepository.save(entry)
        except IntegrityError:
            raise ConflictException("This title is already in your library")

        cache_service.acquire_reference(record.id)
        logger.info("library_entry_added", user_id=self.user_id, entry_id=entry.id,
                    cache_record_id=record.id, media_kind=entry.media_kind, status=entry.status)
        return LibraryEntryRepository.get_by_id(entry.id)

    def update_entry(self, entry_id, changes: Dict[str, Any]) -> LibraryEntry:
        """
        Apply a partial update. Only keys present in changes are touched:
        progress is merged first, then the status transition runs, then
        explicit timestamps override whatever the transition set.
        """
        entry = self.get_entry(entry_id)

        status = validate_status(changes["status"]) if "status" in changes else None
        rating = validate_rating(changes.get("user_rating"))
        notes = validate_notes(changes.get("personal_notes"))
        timestamps = {field: parse_timestamp(field, changes[field]) for field in TIMESTAMP_FIELDS if field in changes}

        now = now_utc()
        if "progress" in changes:
            entry.progress = merge_progress(entry.media_kind, entry.progress, changes["progress"], now)

        if status is not None:
            essential_data = entry.cache_record.essential_data if entry.cache_record else {}
            apply_status_transition(entry, status, essential_data, now)

        if "user_rating" in changes:
            entry.user_rating = rating
        if "personal_notes" in changes:
            entry.personal_notes = notes
        for field, value in timestamps.items():
            setattr(entry, field, value)

        entry.updated_at = now
        LibraryEntryRepository.save(entry)
        logger.info("library_entry_updated", user_id=self.user_id, entry_id=entry.id,
                    fields=sorted(changes.keys()), status=entry.status)
        return LibraryEntryRepository.get_by_id(entry.id)

    def delete_entry(self, entry_id) -> Dict[str, Any]:
        entry = self.get_entry(entry_id)
        cache_record_id = entry.cache_record_id

        LibraryEntryRepository.delete(entry)
        cache_record_deleted = cache_service.release_reference(cache_record_id)

        logger.info("library_entry_deleted", user_id=self.user_id, entry_id=entry_id,
                    cache_record_id=cache_record_id, cache_record_deleted=cache_record_deleted)
        return {"deleted_id": entry_id, "cache_record_deleted": cache_record_deleted}

    def stats(self) -> Dict[str, Any]:
        by_status = {status: 0 for status in LIBRARY_STATUSES}
        by_kind = {kind: dict({"total": 0}, **{status: 0 for status in LIBRARY_STATUSES}) for kind in MEDIA_KINDS}

        total = 0
        for media_kind, status, count in LibraryEntryRepository.count_by_kind_and_status(self.user_id):
            total += count
            if status in by_status:
                by_status[status] += count
            kind_stats = by_kind.setdefault(media_kind, {"total": 0})
            kind_stats["total"] += count
            kind_stats[status] = kind_stats.get(status, 0) + count

        return {"total": total, "by_status": by_status, "by_kind": by_kind}
