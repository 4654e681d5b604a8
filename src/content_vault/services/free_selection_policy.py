"""
Free-Selection Policy - "up to N free videos / M free headshots per project"
"""
import logging
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import ContentItem, ContentType, Project, Selection, SelectionType
from ..exceptions import AlreadySelected, ContentNotFound, LimitReached, ProjectMismatch, ProjectNotFound
from .entitlement_store import EntitlementStore, free_limit_for
from .metrics import increment_counter

logger = logging.getLogger(__name__)


class FreeSelectionPolicy:
    """Enforces per-project free quotas and records selections"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntitlementStore(db)

    def _get_project(self, project_id: str) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found")
        return project

    def can_select_free(self, user_id: int, project_id: str, content_type) -> bool:
        """Whether another free selection of this type fits in the quota"""
        project = self._get_project(project_id)
        used = self.store.count_free_selections(user_id, project_id, content_type)
        return used < free_limit_for(project, content_type)

    def select_free(self, user_id: int, project_id: str, content_item_id: int) -> Selection:
        """
        Record a free selection and commit it.

        The quota is re-counted and the row inserted in one statement while
        holding the (user, project) entitlement lock, so concurrent calls
        cannot overrun the limit. The unique (user, item) constraint catches
        duplicates that slip past the pre-check.

        Raises:
            ContentNotFound, ProjectMismatch, AlreadySelected, LimitReached
        """
        item = self.db.get(ContentItem, content_item_id)
        if item is None:
            raise ContentNotFound(f"Content item {content_item_id} not found")
        if item.project_id != project_id:
            raise ProjectMismatch(
                f"Content item {content_item_id} does not belong to project {project_id}",
                details={"content_item_id": content_item_id, "project_id": project_id},
            )
        project = item.project
        content_type = ContentType(item.type)
        item_id = item.id

        try:
            self.store.lock(user_id, project.id)

            existing = self.store.get_selection(user_id, item.id)
            if existing is not None:
                raise AlreadySelected(
                    "Content already selected",
                    details={"selection_id": existing.id, "content_item_id": item.id},
                )

            limit = free_limit_for(project, content_type)
            inserted = self._insert_if_under_limit(user_id, project.id, item, limit)
            if not inserted:
                used = self.store.count_free_selections(user_id, project.id, content_type)
                raise LimitReached(
                    f"Free {content_type.value} limit reached for this project",
                    details={"content_type": content_type.value, "used": used, "limit": limit},
                )

            selection = self.store.get_selection(user_id, item.id)
            self.db.commit()
        except (AlreadySelected, LimitReached) as e:
            self.db.rollback()
            increment_counter("free_selections_total", labels={"result": e.code.lower()})
            logger.info(f"Free selection of item {item_id} by user {user_id} rejected: {e.code}")
            raise
        except Exception:
            self.db.rollback()
            raise

        increment_counter("free_selections_total", labels={"result": "selected"})
        logger.info(
            f"User {user_id} free-selected {content_type.value} {item_id} in project {project_id}"
        )
        return selection

    def _insert_if_under_limit(self, user_id: int, project_id: str, item: ContentItem, limit: int) -> bool:
        used = (
            select(func.count(Selection.id))
            .where(
                Selection.user_id == user_id,
                Selection.project_id == project_id,
                Selection.content_type == item.type,
            )
            .correlate(None)
            .scalar_subquery()
        )
        row = select(
            literal(user_id, Integer),
            literal(project_id, String),
            literal(item.id, Integer),
            literal(item.type, String),
            literal(SelectionType.FREE.value, String),
            literal(datetime.utcnow(), DateTime),
        ).where(used < limit)
        stmt = insert(Selection.__table__).from_select(
            ["user_id", "project_id", "content_item_id", "content_type", "selection_type", "selected_at"],
            row,
        )

        try:
            with self.db.begin_nested():
                result = self.db.execute(stmt)
        except IntegrityError:
            existing = self.store.get_selection(user_id, item.id)
            raise AlreadySelected(
                "Content already selected",
                details={"selection_id": existing.id if existing else None, "content_item_id": item.id},
            )
        return result.rowcount == 1
