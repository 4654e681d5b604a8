"""
Access Decision Function - may this user download this content item?
"""
import enum
import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db.models import ContentItem, ContentType, Payment, PaymentStatus, User
from .entitlement_store import EntitlementStore
from .metrics import increment_counter
from .package_catalog import PackageType, scope_covers

logger = logging.getLogger(__name__)


class AccessReason(str, enum.Enum):
    FREE_SELECTION = "free_selection"
    INDIVIDUAL_PURCHASE = "individual_purchase"
    ALL_REMAINING_CONTENT = "all_remaining_content"
    ADDITIONAL_3_VIDEOS = "additional_3_videos"
    NO_ENTITLEMENT = "no_entitlement"
    NOT_FOUND = "not_found"


class AccessContext(BaseModel):
    """Entitlement facts for one (user, content item) pair"""
    content_type: ContentType
    has_selection: bool = False
    has_individual_purchase: bool = False
    has_all_remaining_content: bool = False
    has_additional_3_videos: bool = False

    class Config:
        frozen = True


class AccessDecision(BaseModel):
    allowed: bool
    reason: AccessReason

    class Config:
        frozen = True


def has_access(ctx: AccessContext) -> AccessDecision:
    """
    Evaluate access in precedence order; first match wins.

    1. free selection of the item
    2. succeeded individual purchase of the item
    3. all_remaining_content package for the item's project
    4. additional_3_videos package, videos only
    """
    if ctx.has_selection:
        return AccessDecision(allowed=True, reason=AccessReason.FREE_SELECTION)
    if ctx.has_individual_purchase:
        return AccessDecision(allowed=True, reason=AccessReason.INDIVIDUAL_PURCHASE)
    if ctx.has_all_remaining_content and scope_covers(PackageType.ALL_REMAINING_CONTENT, ctx.content_type):
        return AccessDecision(allowed=True, reason=AccessReason.ALL_REMAINING_CONTENT)
    if ctx.has_additional_3_videos and scope_covers(PackageType.ADDITIONAL_3_VIDEOS, ctx.content_type):
        return AccessDecision(allowed=True, reason=AccessReason.ADDITIONAL_3_VIDEOS)
    return AccessDecision(allowed=False, reason=AccessReason.NO_ENTITLEMENT)


class AccessService:
    """Loads entitlement state and applies has_access. Never caches."""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntitlementStore(db)

    def load_context(self, user_id: int, item: ContentItem) -> AccessContext:
        entitlement = self.store.get(user_id, item.project_id)
        purchased = (
            self.db.query(Payment.id)
            .filter(
                Payment.user_id == user_id,
                Payment.content_item_id == item.id,
                Payment.package_type.is_(None),
                Payment.status == PaymentStatus.SUCCEEDED.value,
            )
            .first()
            is not None
        )
        return AccessContext(
            content_type=ContentType(item.type),
            has_selection=self.store.get_selection(user_id, item.id) is not None,
            has_individual_purchase=purchased,
            has_all_remaining_content=bool(entitlement and entitlement.has_all_remaining_content),
            has_additional_3_videos=bool(entitlement and entitlement.has_additional_3_videos),
        )

    def decide(self, user_id: int, item: ContentItem) -> AccessDecision:
        decision = has_access(self.load_context(user_id, item))
        increment_counter("access_checks_total", labels={"result": "allow" if decision.allowed else "deny"})
        logger.debug(f"Access for user {user_id} to item {item.id}: {decision.reason.value}")
        return decision

    def check(self, user_id: int, content_item_id: int) -> AccessDecision:
        """Missing user or item is a deny, never an error"""
        item: Optional[ContentItem] = self.db.get(ContentItem, content_item_id)
        if item is None or self.db.get(User, user_id) is None:
            increment_counter("access_checks_total", labels={"result": "deny"})
            return AccessDecision(allowed=False, reason=AccessReason.NOT_FOUND)
        return self.decide(user_id, item)
