"""
Repository for LibraryEntry database operations
"""

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from db import db
from models.library_entry import LibraryEntry


class LibraryEntryRepository:
    """Repository for LibraryEntry database operations"""

    @staticmethod
    def get_by_id(id):
        """Get LibraryEntry by ID"""
        return db.session.get(LibraryEntry, id)

    @staticmethod
    def get_for_user(id, user_id):
        """Get LibraryEntry by ID only when it belongs to user_id"""
        return LibraryEntry.query.filter_by(id=id, user_id=user_id).first()

    @staticmethod
    def get_by_user_and_cache_record(user_id, cache_record_id):
        return LibraryEntry.query.filter_by(user_id=user_id, cache_record_id=cache_record_id).first()

    @staticmethod
    def list_for_user(user_id, media_kind=None, status=None, page=1, per_page=50):
        """Paginated entries of a user, newest first. Returns (items, total)."""
        query = LibraryEntry.query.filter_by(user_id=user_id)
        if media_kind:
            query = query.filter_by(media_kind=media_kind)
        if status:
            query = query.filter_by(status=status)

        query = query.order_by(LibraryEntry.created_at.desc(), LibraryEntry.id.desc())
        result = query.paginate(page=page, per_page=per_page, error_out=False)
        return result.items, result.total

    @staticmethod
    def count_by_kind_and_status(user_id):
        """[(media_kind, status, count), ...] for one user"""
        return (
            db.session.query(LibraryEntry.media_kind, LibraryEntry.status, func.count(LibraryEntry.id))
            .filter(LibraryEntry.user_id == user_id)
            .group_by(LibraryEntry.media_kind, LibraryEntry.status)
            .all()
        )

    @staticmethod
    def save(item):
        """Insert or persist a LibraryEntry; IntegrityError is raised on a duplicate (user, cache record)"""
        try:
            db.session.add(item)
            db.session.commit()
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def delete(item):
        """Delete LibraryEntry record"""
        try:
            db.session.delete(item)
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
