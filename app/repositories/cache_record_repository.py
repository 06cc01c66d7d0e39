"""
Repository for CacheRecord database operations
Counters are only changed through single UPDATE statements.
"""

from sqlalchemy import delete, exists, update
from sqlalchemy.exc import SQLAlchemyError
from db import db
from constants import PROVIDER_MANUAL
from models.cache_record import CacheRecord
from models.library_entry import LibraryEntry

COUNTER_COLUMNS = ("fetch_count", "error_count", "reference_count", "access_count")


class CacheRecordRepository:
    """Repository for CacheRecord database operations"""

    @staticmethod
    def get_by_id(id):
        """Get CacheRecord by ID"""
        return db.session.get(CacheRecord, id)

    @staticmethod
    def get_by_key(provider, external_id, media_kind):
        """Get CacheRecord by its unique (provider, external_id, media_kind) key"""
        return CacheRecord.query.filter_by(
            provider=provider, external_id=str(external_id), media_kind=media_kind
        ).first()

    @staticmethod
    def create(**kwargs):
        """Create new CacheRecord; IntegrityError is raised when the key already exists"""
        try:
            item = CacheRecord(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def increment(id, counters=None, **values):
        """
        Atomically add deltas to counter columns and set plain columns in
        one UPDATE. Returns the number of rows touched.
        """
        changes = dict(values)
        for column, delta in (counters or {}).items():
            if column not in COUNTER_COLUMNS:
                raise ValueError(f"{column} is not a counter column")
            changes[column] = getattr(CacheRecord, column) + delta

        if not changes:
            return 0

        try:
            result = db.session.execute(
                update(CacheRecord)
                .where(CacheRecord.id == id)
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

        return result.rowcount

    @staticmethod
    def delete_if_unreferenced_manual(id):
        """Delete a manual record only when nothing points at it anymore"""
        try:
            result = db.session.execute(
                delete(CacheRecord)
                .where(
                    CacheRecord.id == id,
                    CacheRecord.provider == PROVIDER_MANUAL,
                    CacheRecord.reference_count <= 0,
                    ~exists().where(LibraryEntry.cache_record_id == CacheRecord.id),
                )
                .execution_options(synchronize_session="fetch")
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

        return result.rowcount > 0

    @staticmethod
    def purge(media_kind, accessed_before):
        """Delete unreferenced records of a kind not accessed since accessed_before"""
        try:
            result = db.session.execute(
                delete(CacheRecord)
                .where(
                    CacheRecord.media_kind == media_kind,
                    CacheRecord.last_accessed < accessed_before,
                    ~exists().where(LibraryEntry.cache_record_id == CacheRecord.id),
                )
                .execution_options(synchronize_session="fetch")
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

        return result.rowcount

    @staticmethod
    def count(media_kind=None):
        """Count CacheRecord rows, optionally for one kind"""
        query = CacheRecord.query
        if media_kind:
            query = query.filter_by(media_kind=media_kind)
        return query.count()
