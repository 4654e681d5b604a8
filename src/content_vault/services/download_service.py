"""
Download Service - access-checked downloads and the append-only download log
"""
import logging
from typing import List, Tuple

from sqlalchemy.orm import Session, joinedload

from ..db.models import ContentItem, Download, User
from ..exceptions import ContentNotFound, Forbidden
from .access_policy import AccessDecision, AccessService
from .metrics import increment_counter

logger = logging.getLogger(__name__)


class DownloadService:
    def __init__(self, db: Session):
        self.db = db
        self.access = AccessService(db)

    def require_access(self, user: User, content_item_id: int) -> Tuple[ContentItem, AccessDecision]:
        """Load an item the user may open; 404 if missing, 403 if not entitled"""
        item = self.db.get(ContentItem, content_item_id)
        if item is None:
            raise ContentNotFound(f"Content item {content_item_id} not found")

        decision = self.access.decide(user.id, item)
        if not decision.allowed:
            raise Forbidden(
                "Access denied. Please select this content for free or purchase it.",
                details={"content_item_id": item.id, "reason": decision.reason.value},
            )
        return item, decision

    def record_download(self, user: User, content_item_id: int) -> ContentItem:
        """
        Check access and log a download. Every download is re-checked,
        including repeats of an item downloaded before.
        """
        item, decision = self.require_access(user, content_item_id)

        self.db.add(Download(user_id=user.id, content_item_id=item.id))
        self.db.commit()
        increment_counter("downloads_total", labels={"reason": decision.reason.value})
        logger.info(f"User {user.id} downloaded item {item.id} via {decision.reason.value}")
        return item

    def history(self, user_id: int) -> List[Download]:
        return (
            self.db.query(Download)
            .options(joinedload(Download.content_item))
            .filter(Download.user_id == user_id)
            .order_by(Download.downloaded_at.desc(), Download.id.desc())
            .all()
        )
