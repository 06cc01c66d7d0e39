"""
Repository for ApiToken database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from db import db
from models.apitoken import ApiToken


class ApiTokenRepository:
    """Repository for ApiToken database operations"""

    @staticmethod
    def get_by_token(token):
        """Get ApiToken with its user by token string"""
        return ApiToken.query.options(joinedload(ApiToken.user)).filter_by(token=token).first()

    @staticmethod
    def create(**kwargs):
        """Create new ApiToken record"""
        try:
            item = ApiToken(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def touch(item, used_at):
        """Record last use of a token"""
        try:
            item.last_used = used_at
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
