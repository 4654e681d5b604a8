"""
Content Repository - projects and content item metadata
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import config
from ..db.models import (
    ContentItem,
    ContentType,
    Download,
    Payment,
    Project,
    ProjectEntitlement,
    Selection,
)
from ..exceptions import ContentNotFound, ContentVaultError, ProjectNotFound

logger = logging.getLogger(__name__)

# Fields an admin may change after creation
MUTABLE_ITEM_FIELDS = ("title", "description", "category", "thumbnail_url", "duration", "width", "height", "aspect_ratio")
NON_NULLABLE_ITEM_FIELDS = ("title",)
MUTABLE_PROJECT_FIELDS = (
    "name",
    "description",
    "free_video_limit",
    "free_headshot_limit",
    "additional_3_videos_price",
    "all_content_price",
)
NULLABLE_PROJECT_FIELDS = ("description", "free_headshot_limit")


class ContentRepository:
    """Read and admin-write access to projects and content items"""

    def __init__(self, db: Session):
        self.db = db

    def get_content_item(self, content_item_id: int) -> Optional[ContentItem]:
        return self.db.get(ContentItem, content_item_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def require_content_item(self, content_item_id: int) -> ContentItem:
        item = self.get_content_item(content_item_id)
        if item is None:
            raise ContentNotFound(f"Content item {content_item_id} not found")
        return item

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found")
        return project

    def list_project_content(self, project_id: str, content_type: Optional[str] = None) -> List[ContentItem]:
        query = self.db.query(ContentItem).filter(ContentItem.project_id == project_id)
        if content_type:
            query = query.filter(ContentItem.type == ContentType(content_type).value)
        return query.order_by(ContentItem.id).all()

    def list_user_projects(self, user_id: int) -> List[Project]:
        """Projects the user owns or has any entitlement in"""
        entitled = self.db.query(ProjectEntitlement.project_id).filter(ProjectEntitlement.user_id == user_id)
        return (
            self.db.query(Project)
            .filter(or_(Project.owner_user_id == user_id, Project.id.in_(entitled)))
            .order_by(Project.created_at.desc())
            .all()
        )

    def list_projects(self) -> List[Project]:
        return self.db.query(Project).order_by(Project.created_at.desc()).all()

    # Admin writes

    def create_project(self, owner_user_id: int, name: str, **fields) -> Project:
        project = Project(
            owner_user_id=owner_user_id,
            name=name,
            description=fields.get("description"),
            free_video_limit=fields.get("free_video_limit", config.DEFAULT_FREE_VIDEO_LIMIT),
            free_headshot_limit=fields.get("free_headshot_limit"),
            additional_3_videos_price=fields.get("additional_3_videos_price")
            or config.DEFAULT_ADDITIONAL_3_VIDEOS_PRICE,
            all_content_price=fields.get("all_content_price") or config.DEFAULT_ALL_CONTENT_PRICE,
        )
        self._validate_project(project)
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Created project {project.id} ({project.name}) for user {owner_user_id}")
        return project

    def update_project(self, project_id: str, changes: Dict) -> Project:
        project = self.require_project(project_id)
        for key, value in changes.items():
            if value is None and key not in NULLABLE_PROJECT_FIELDS:
                continue
            if key in MUTABLE_PROJECT_FIELDS:
                setattr(project, key, value)
        self._validate_project(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Updated project {project_id}: {sorted(changes)}")
        return project

    def reassign_project(self, project_id: str, new_owner_user_id: int) -> Project:
        """Hand a project and its content items to another client"""
        project = self.require_project(project_id)
        previous_owner = project.owner_user_id
        project.owner_user_id = new_owner_user_id
        (
            self.db.query(ContentItem)
            .filter(ContentItem.project_id == project_id)
            .update({ContentItem.owner_user_id: new_owner_user_id}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Reassigned project {project_id} from user {previous_owner} to user {new_owner_user_id}")
        return project

    @staticmethod
    def _validate_project(project: Project) -> None:
        if project.free_video_limit is not None and project.free_video_limit < 0:
            raise ContentVaultError("free_video_limit cannot be negative")
        if project.free_headshot_limit is not None and project.free_headshot_limit < 0:
            raise ContentVaultError("free_headshot_limit cannot be negative")
        for price in (project.additional_3_videos_price, project.all_content_price):
            if price is not None and Decimal(str(price)) <= 0:
                raise ContentVaultError("Package prices must be positive")

    def create_content_item(self, project_id: str, title: str, content_type: str, filename: str,
                            file_url: str, **fields) -> ContentItem:
        project = self.require_project(project_id)
        item = ContentItem(
            project_id=project.id,
            owner_user_id=fields.get("owner_user_id") or project.owner_user_id,
            title=title,
            type=ContentType(content_type).value,
            filename=filename,
            file_url=file_url,
            price=fields.get("price") or config.DEFAULT_ITEM_PRICE,
            **{k: fields.get(k) for k in MUTABLE_ITEM_FIELDS if k != "title" and k in fields},
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Created {item.type} {item.id} in project {project.id}")
        return item

    def update_content_metadata(self, content_item_id: int, changes: Dict) -> ContentItem:
        """Only metadata fields change; type, project and price stay fixed"""
        item = self.require_content_item(content_item_id)
        for key, value in changes.items():
            if value is None and key in NON_NULLABLE_ITEM_FIELDS:
                continue
            if key in MUTABLE_ITEM_FIELDS:
                setattr(item, key, value)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_content_item(self, content_item_id: int) -> Dict[str, int]:
        """Remove an item with its downloads, selections and payments"""
        item = self.require_content_item(content_item_id)
        counts = self._delete_item_dependents([item.id])
        self.db.delete(item)
        self.db.commit()
        logger.warning(f"Deleted content item {content_item_id} with dependents {counts}")
        return counts

    def delete_project(self, project_id: str) -> Dict[str, int]:
        """Remove a project, its content and every row that references them"""
        project = self.require_project(project_id)
        item_ids = [row.id for row in self.db.query(ContentItem.id).filter(ContentItem.project_id == project_id)]
        counts = self._delete_item_dependents(item_ids)

        counts["payments"] += (
            self.db.query(Payment)
            .filter(Payment.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts["selections"] += (
            self.db.query(Selection)
            .filter(Selection.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts["entitlements"] = (
            self.db.query(ProjectEntitlement)
            .filter(ProjectEntitlement.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts["content_items"] = (
            self.db.query(ContentItem)
            .filter(ContentItem.project_id == project_id)
            .delete(synchronize_session=False)
        )
        self.db.query(Project).filter(Project.id == project.id).delete(synchronize_session=False)
        self.db.commit()
        logger.warning(f"Deleted project {project_id} with dependents {counts}")
        return counts

    def _delete_item_dependents(self, item_ids: List[int]) -> Dict[str, int]:
        counts = {"downloads": 0, "selections": 0, "payments": 0}
        if not item_ids:
            return counts
        counts["downloads"] = (
            self.db.query(Download).filter(Download.content_item_id.in_(item_ids)).delete(synchronize_session=False)
        )
        counts["selections"] = (
            self.db.query(Selection).filter(Selection.content_item_id.in_(item_ids)).delete(synchronize_session=False)
        )
        counts["payments"] = (
            self.db.query(Payment).filter(Payment.content_item_id.in_(item_ids)).delete(synchronize_session=False)
        )
        return counts
