"""
Entitlement Store - per-user, per-project package flags and derived free-selection counts
"""
import logging
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import config
from ..db.models import ContentType, Project, ProjectEntitlement, Selection
from .package_catalog import PackageType

logger = logging.getLogger(__name__)

_FLAG_COLUMNS = {
    PackageType.ADDITIONAL_3_VIDEOS: "has_additional_3_videos",
    PackageType.ALL_REMAINING_CONTENT: "has_all_remaining_content",
}


def free_limit_for(project: Project, content_type) -> int:
    """Free selection cap for one content type in this project"""
    content_type = ContentType(content_type)
    if content_type == ContentType.VIDEO:
        if project.free_video_limit is None:
            return config.DEFAULT_FREE_VIDEO_LIMIT
        return project.free_video_limit
    if project.free_headshot_limit is None:
        return config.DEFAULT_FREE_HEADSHOT_LIMIT
    return project.free_headshot_limit


class EntitlementStore:
    """
    Persistent record of package ownership and free selections.

    Free-selection counts are always derived from the selections table.
    Mutating methods flush but never commit: the caller's transaction decides.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int, project_id: str) -> Optional[ProjectEntitlement]:
        return (
            self.db.query(ProjectEntitlement)
            .filter(ProjectEntitlement.user_id == user_id, ProjectEntitlement.project_id == project_id)
            .first()
        )

    def get_or_create(self, user_id: int, project_id: str) -> ProjectEntitlement:
        """Fetch the entitlement row, inserting an empty one if missing"""
        entitlement = self.get(user_id, project_id)
        if entitlement is not None:
            return entitlement

        try:
            with self.db.begin_nested():
                entitlement = ProjectEntitlement(user_id=user_id, project_id=project_id)
                self.db.add(entitlement)
        except IntegrityError:
            # Another transaction inserted it first
            logger.debug(f"Entitlement row for user {user_id} project {project_id} created concurrently")
            entitlement = self.get(user_id, project_id)
        return entitlement

    def lock(self, user_id: int, project_id: str) -> ProjectEntitlement:
        """
        Take a row lock on the (user, project) entitlement row.

        Serializes concurrent free selections for the same user and project on
        PostgreSQL. SQLite ignores FOR UPDATE and serializes writers itself.
        """
        self.get_or_create(user_id, project_id)
        return (
            self.db.query(ProjectEntitlement)
            .filter(ProjectEntitlement.user_id == user_id, ProjectEntitlement.project_id == project_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

    def count_free_selections(self, user_id: int, project_id: str, content_type) -> int:
        return (
            self.db.query(func.count(Selection.id))
            .filter(
                Selection.user_id == user_id,
                Selection.project_id == project_id,
                Selection.content_type == ContentType(content_type).value,
            )
            .scalar()
        ) or 0

    def get_selection(self, user_id: int, content_item_id: int) -> Optional[Selection]:
        return (
            self.db.query(Selection)
            .filter(Selection.user_id == user_id, Selection.content_item_id == content_item_id)
            .first()
        )

    def has_package(self, user_id: int, project_id: str, package_type) -> bool:
        """True when the package, or one that supersedes it, is owned"""
        package_type = PackageType.parse(package_type)
        entitlement = self.get(user_id, project_id)
        if entitlement is None:
            return False
        if entitlement.has_all_remaining_content:
            return True
        return bool(getattr(entitlement, _FLAG_COLUMNS[package_type]))

    def grant_package(self, user_id: int, project_id: str, package_type) -> bool:
        """
        Set a package flag. Returns True if the flag changed.

        Re-granting an owned package is a no-op.
        """
        package_type = PackageType.parse(package_type)
        entitlement = self.get_or_create(user_id, project_id)
        column = _FLAG_COLUMNS[package_type]
        if getattr(entitlement, column):
            logger.info(f"User {user_id} already holds {package_type.value} for project {project_id}")
            return False

        setattr(entitlement, column, True)
        self.db.flush()
        logger.info(f"Granted {package_type.value} to user {user_id} for project {project_id}")
        return True

    def revoke_package(self, user_id: int, project_id: str, package_type) -> bool:
        """Clear a package flag. Admin-only path; returns True if the flag changed."""
        package_type = PackageType.parse(package_type)
        entitlement = self.get(user_id, project_id)
        column = _FLAG_COLUMNS[package_type]
        if entitlement is None or not getattr(entitlement, column):
            return False

        setattr(entitlement, column, False)
        self.db.flush()
        logger.warning(f"Revoked {package_type.value} from user {user_id} for project {project_id}")
        return True

    def summary(self, user_id: int, project: Project) -> Dict:
        """Free quota usage and package ownership for display"""
        entitlement = self.get(user_id, project.id)
        free = {}
        for content_type in ContentType:
            used = self.count_free_selections(user_id, project.id, content_type)
            limit = free_limit_for(project, content_type)
            free[content_type.value] = {
                "used": used,
                "limit": limit,
                "remaining": max(limit - used, 0),
            }
        return {
            "project_id": project.id,
            "free_selections": free,
            "has_additional_3_videos": bool(entitlement and entitlement.has_additional_3_videos),
            "has_all_remaining_content": bool(entitlement and entitlement.has_all_remaining_content),
        }
