"""
Content API routes - free selection, item purchase, access checks and downloads
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .auth import get_current_user
from .db import get_db
from .db.models import Selection, User
from .schemas import (
    AccessResponse,
    ContentItemResponse,
    DownloadHistoryEntry,
    DownloadResponse,
    PaymentIntentResponse,
    SelectFreeRequest,
    SelectionResponse,
)
from .services.access_policy import AccessService
from .services.content_repository import ContentRepository
from .services.download_service import DownloadService
from .services.free_selection_policy import FreeSelectionPolicy
from .services.payment_gateway import PaymentProcessor, get_payment_processor
from .services.payment_lifecycle import PaymentLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/content/selections", response_model=List[SelectionResponse])
async def list_selections(
    project_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Free selections made by the current user, optionally for one project"""
    query = db.query(Selection).filter(Selection.user_id == current_user.id)
    if project_id:
        query = query.filter(Selection.project_id == project_id)
    return query.order_by(Selection.selected_at).all()


@router.get("/content/{content_id}", response_model=ContentItemResponse)
async def get_content_item(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One content item, for users entitled to it"""
    item, _ = DownloadService(db).require_access(current_user, content_id)
    return item


@router.post("/content/{content_id}/select-free", response_model=SelectionResponse)
async def select_free(
    content_id: int,
    request: Optional[SelectFreeRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Use one of the project's free selections on this item

    403 LIMIT_REACHED when the quota is used up, 409 ALREADY_SELECTED on repeats
    """
    item = ContentRepository(db).require_content_item(content_id)
    project_id = (request.project_id if request else None) or item.project_id
    return FreeSelectionPolicy(db).select_free(current_user.id, project_id, item.id)


@router.post("/content/{content_id}/create-payment-intent", response_model=PaymentIntentResponse)
def create_content_payment_intent(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: PaymentProcessor = Depends(get_payment_processor),
):
    """Start an individual purchase of one content item"""
    result = PaymentLifecycleManager(db, processor).create_item_payment_intent(current_user, content_id)
    return PaymentIntentResponse(
        client_secret=result.client_secret,
        payment_id=result.payment_id,
        payment_intent_id=result.payment_intent_id,
        amount=result.amount_cents,
        currency=result.currency,
    )


@router.get("/content/{content_id}/access", response_model=AccessResponse)
async def check_access(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    decision = AccessService(db).check(current_user.id, content_id)
    return AccessResponse(has_access=decision.allowed, reason=decision.reason.value)


@router.post("/content/{content_id}/download", response_model=DownloadResponse)
async def download_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Check access, log the download and hand back the file location"""
    item = DownloadService(db).record_download(current_user, content_id)
    return DownloadResponse(download_url=item.file_url, filename=item.filename)


@router.get("/downloads/history", response_model=List[DownloadHistoryEntry])
async def download_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return DownloadService(db).history(current_user.id)
