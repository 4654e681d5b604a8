"""
Payment processor webhook route
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from .db import get_db
from .services.payment_gateway import PaymentProcessor, get_payment_processor
from .services.payment_lifecycle import PaymentLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])


@router.post("/payment-webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
    processor: PaymentProcessor = Depends(get_payment_processor),
):
    """
    Handle processor webhooks (unauthenticated, signature-verified)

    Returns 400 SIGNATURE_INVALID before touching any row when the signature
    does not verify. Every verified event is acknowledged with 200, including
    replays and events for unknown intents, so the processor stops retrying.
    """
    payload = await request.body()
    result = PaymentLifecycleManager(db, processor).handle_webhook(payload, stripe_signature)
    return {"received": True, "outcome": result.outcome}
