"""
Model: CacheRecord
Shared provider metadata, one row per (provider, external_id, media_kind)
"""

from db import db, now_utc
from constants import PROVIDER_MANUAL
from utils import ensure_utc, isoformat


class CacheRecord(db.Model):
    __tablename__ = "cache_records"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(32), nullable=False)
    external_id = db.Column(db.String(128), nullable=False)
    media_kind = db.Column(db.String(16), nullable=False, index=True)
    essential_data = db.Column(db.JSON, nullable=False, default=dict)

    # Refresh control
    last_fetched = db.Column(db.DateTime, default=now_utc)
    next_fetch = db.Column(db.DateTime)
    ttl_seconds = db.Column(db.Integer)
    fetch_count = db.Column(db.Integer, nullable=False, default=1)
    error_count = db.Column(db.Integer, nullable=False, default=0)

    # Usage stats
    reference_count = db.Column(db.Integer, nullable=False, default=0)
    last_accessed = db.Column(db.DateTime, default=now_utc)
    access_count = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=now_utc)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        db.UniqueConstraint("provider", "external_id", "media_kind", name="uq_cache_provider_external_kind"),
        # Purge scans by kind and age
        db.Index("idx_cache_kind_accessed", "media_kind", "last_accessed"),
    )

    @property
    def title(self):
        return (self.essential_data or {}).get("title")

    @property
    def is_manual(self):
        return self.provider == PROVIDER_MANUAL

    def is_fresh(self, now=None):
        next_fetch = ensure_utc(self.next_fetch)
        if next_fetch is None:
            return False
        return (ensure_utc(now) or now_utc()) < next_fetch

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "external_id": self.external_id,
            "media_kind": self.media_kind,
            "essential_data": dict(self.essential_data or {}),
            "refresh_control": {
                "last_fetched": isoformat(self.last_fetched),
                "next_fetch": isoformat(self.next_fetch),
                "ttl_seconds": self.ttl_seconds,
                "fetch_count": self.fetch_count,
                "error_count": self.error_count,
            },
            "usage_stats": {
                "reference_count": self.reference_count,
                "last_accessed": isoformat(self.last_accessed),
                "access_count": self.access_count,
            },
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
