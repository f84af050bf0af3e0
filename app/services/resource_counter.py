"""
Resource counter - live counts of a user's notes and folders
"""
import logging
from typing import Union
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.note import Note
from app.models.folder import Folder
from app.services.plan_resolver import ResolutionFailed
from app.services.quota_policy import ResourceKind

logger = logging.getLogger(__name__)


class CountFailed(ResolutionFailed):
    """Resource count could not be read"""
    pass


class ResourceCounter:
    """Count-only queries; nothing is cached between calls."""

    def __init__(self, db: Session):
        self.db = db

    def count(self, user_id: UUID, kind: Union[ResourceKind, str]) -> int:
        kind = ResourceKind(kind)
        if kind == ResourceKind.NOTE:
            query = self.db.query(func.count(Note.id)).filter(
                Note.user_id == user_id,
                Note.is_trashed.is_(False)
            )
        else:
            query = self.db.query(func.count(Folder.id)).filter(
                Folder.user_id == user_id
            )

        try:
            return query.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to count {kind.value}s for user {user_id}: {e}")
            raise CountFailed(f"Could not count {kind.value}s for user {user_id}") from e
