"""
Model: LibraryEntry
One user's tracking of one CacheRecord
"""

from db import db, now_utc
from constants import MEDIA_KIND_GAME, STATUS_PLANNED
from services.progress import calculate_task_progress
from utils import isoformat


class LibraryEntry(db.Model):
    __tablename__ = "library_entries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    cache_record_id = db.Column(db.Integer, db.ForeignKey("cache_records.id"), nullable=False, index=True)
    media_kind = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PLANNED)
    progress = db.Column(db.JSON, nullable=False, default=dict)
    user_rating = db.Column(db.Integer)  # 1-5
    personal_notes = db.Column(db.Text)

    # Last transition timestamps
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    dropped_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=now_utc)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc)

    cache_record = db.relationship("CacheRecord", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("user_id", "cache_record_id", name="uq_library_user_cache"),
        db.Index("idx_library_user_kind_status", "user_id", "media_kind", "status"),
    )

    def task_summary(self):
        if self.media_kind != MEDIA_KIND_GAME:
            return None
        return calculate_task_progress((self.progress or {}).get("tasks"))

    def to_dict(self, include_cache_record=True):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "cache_record_id": self.cache_record_id,
            "media_kind": self.media_kind,
            "status": self.status,
            "progress": dict(self.progress or {}),
            "user_rating": self.user_rating,
            "personal_notes": self.personal_notes,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
            "dropped_at": isoformat(self.dropped_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if self.media_kind == MEDIA_KIND_GAME:
            data["task_summary"] = self.task_summary()
        if include_cache_record and self.cache_record is not None:
            data["cache_record"] = self.cache_record.to_dict()
        return data
