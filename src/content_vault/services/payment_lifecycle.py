"""
Payment Lifecycle Manager - payment intents, confirmation and entitlement grants

States: pending -> succeeded | pending -> failed. Terminal states never change.
A declined card leaves the payment pending; the client may retry on the same
intent until it succeeds or is canceled.
Confirmation is a compare-and-swap on status; only the caller whose update
matched the pending row grants the entitlement.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import config
from ..db.models import ContentItem, Payment, PaymentEvent, PaymentStatus, Project, User
from ..exceptions import (
    AlreadyOwned,
    AmountMismatch,
    ContentNotFound,
    InvalidPackage,
    PaymentNotCompleted,
    PaymentNotFound,
    ProjectMismatch,
    ProjectNotFound,
    SignatureInvalid,
)
from .access_policy import AccessService
from .entitlement_store import EntitlementStore
from .metrics import increment_counter
from .package_catalog import PackageType, price_for, to_cents
from .payment_gateway import PaymentProcessor, WebhookEvent

logger = logging.getLogger(__name__)

SUCCEEDED_EVENTS = {"payment_intent.succeeded"}
# A decline is not final: the intent returns to requires_payment_method
DECLINED_EVENTS = {"payment_intent.payment_failed"}
FAILED_EVENTS = {"payment_intent.canceled"}


@dataclass
class PaymentIntentResult:
    client_secret: str
    payment_id: int
    payment_intent_id: str
    amount_cents: int
    currency: str


@dataclass
class ConfirmationResult:
    payment_id: int
    status: str
    # True only for the call that moved the payment out of pending
    transitioned: bool
    granted_package: Optional[str] = None
    content_item_id: Optional[int] = None


@dataclass
class WebhookResult:
    event_id: str
    event_type: str
    outcome: str


class PaymentLifecycleManager:
    """Creates, confirms and fails payments against one processor"""

    def __init__(self, db: Session, processor: PaymentProcessor):
        self.db = db
        self.processor = processor
        self.store = EntitlementStore(db)

    # Intent creation

    def create_payment_intent(
        self,
        user: User,
        target: Union[ContentItem, Project],
        package_type: Optional[str] = None,
        quoted_amount_cents: Optional[int] = None,
    ) -> PaymentIntentResult:
        """
        Start a purchase of a single item or of a package for a project.

        Raises:
            AlreadyOwned, InvalidPackage, AmountMismatch, PaymentProcessorError
        """
        if isinstance(target, ContentItem):
            if package_type is not None:
                raise InvalidPackage("Packages are purchased per project, not per content item")
            return self._create_item_intent(user, target)
        if isinstance(target, Project):
            if package_type is None:
                raise InvalidPackage("packageType is required for project purchases")
            return self._create_package_intent(user, target, PackageType.parse(package_type), quoted_amount_cents)
        raise TypeError(f"Unsupported payment target: {type(target).__name__}")

    def create_item_payment_intent(self, user: User, content_item_id: int) -> PaymentIntentResult:
        item = self.db.get(ContentItem, content_item_id)
        if item is None:
            raise ContentNotFound(f"Content item {content_item_id} not found")
        return self.create_payment_intent(user, item)

    def create_package_payment_intent(
        self,
        user: User,
        project_id: str,
        package_type: str,
        quoted_amount_cents: Optional[int] = None,
    ) -> PaymentIntentResult:
        project = self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found")
        return self.create_payment_intent(user, project, package_type, quoted_amount_cents)

    def _create_item_intent(self, user: User, item: ContentItem) -> PaymentIntentResult:
        decision = AccessService(self.db).decide(user.id, item)
        if decision.allowed:
            raise AlreadyOwned(
                "Content already purchased",
                details={"content_item_id": item.id, "reason": decision.reason.value},
            )

        amount_cents = to_cents(item.price if item.price is not None else config.DEFAULT_ITEM_PRICE)
        metadata = {
            "purchase_kind": "content_item",
            "user_id": str(user.id),
            "project_id": item.project_id,
            "content_item_id": str(item.id),
        }
        return self._open_payment(
            user,
            amount_cents,
            metadata,
            project_id=item.project_id,
            content_item_id=item.id,
        )

    def _create_package_intent(
        self,
        user: User,
        project: Project,
        package_type: PackageType,
        quoted_amount_cents: Optional[int],
    ) -> PaymentIntentResult:
        if self.store.has_package(user.id, project.id, package_type):
            raise AlreadyOwned(
                "Package already purchased",
                details={"project_id": project.id, "package_type": package_type.value},
            )

        amount_cents = price_for(package_type, project)
        if quoted_amount_cents is not None and quoted_amount_cents != amount_cents:
            raise AmountMismatch(
                "Quoted amount does not match the package price",
                details={"expected_cents": amount_cents, "received_cents": quoted_amount_cents},
            )

        metadata = {
            "purchase_kind": "package",
            "user_id": str(user.id),
            "project_id": project.id,
            "package_type": package_type.value,
        }
        return self._open_payment(
            user,
            amount_cents,
            metadata,
            project_id=project.id,
            package_type=package_type.value,
        )

    def _open_payment(
        self,
        user: User,
        amount_cents: int,
        metadata: dict,
        project_id: Optional[str] = None,
        content_item_id: Optional[int] = None,
        package_type: Optional[str] = None,
    ) -> PaymentIntentResult:
        currency = config.PAYMENT_CURRENCY
        intent = self.processor.create_intent(amount_cents, currency, metadata)

        payment = Payment(
            user_id=user.id,
            project_id=project_id,
            content_item_id=content_item_id,
            package_type=package_type,
            external_payment_intent_id=intent.id,
            amount_cents=amount_cents,
            currency=currency,
            status=PaymentStatus.PENDING.value,
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        kind = "package" if package_type else "content_item"
        increment_counter("payment_intents_total", labels={"kind": kind})
        logger.info(
            f"Created {kind} payment {payment.id} (intent {intent.id}) for user {user.id}: "
            f"{amount_cents} {currency}"
        )
        return PaymentIntentResult(
            client_secret=intent.client_secret,
            payment_id=payment.id,
            payment_intent_id=intent.id,
            amount_cents=amount_cents,
            currency=currency,
        )

    # State transitions

    def _get_payment(self, intent_id: str) -> Payment:
        payment = (
            self.db.query(Payment)
            .filter(Payment.external_payment_intent_id == intent_id)
            .first()
        )
        if payment is None:
            raise PaymentNotFound(f"No payment for intent {intent_id}")
        return payment

    def _transition(self, intent_id: str, new_status: PaymentStatus, failure_reason: Optional[str] = None) -> bool:
        """Conditional pending -> new_status update; True if this call won"""
        values = {"status": new_status.value, "completed_at": datetime.utcnow()}
        if failure_reason is not None:
            values["failure_reason"] = failure_reason
        result = self.db.execute(
            update(Payment)
            .where(
                Payment.external_payment_intent_id == intent_id,
                Payment.status == PaymentStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _confirm(self, intent_id: str) -> ConfirmationResult:
        payment = self._get_payment(intent_id)
        won = self._transition(intent_id, PaymentStatus.SUCCEEDED)
        self.db.refresh(payment)

        if not won:
            if payment.status == PaymentStatus.FAILED.value:
                logger.warning(f"Processor reported success for failed payment {payment.id}; left as failed")
            else:
                logger.info(f"Payment {payment.id} already {payment.status}; confirmation is a no-op")
            increment_counter("payment_confirmations_total", labels={"outcome": "noop"})
            return ConfirmationResult(
                payment_id=payment.id,
                status=payment.status,
                transitioned=False,
                granted_package=payment.package_type,
                content_item_id=payment.content_item_id,
            )

        if payment.package_type:
            # Grant is the last step and shares the transaction with the status change
            self.store.grant_package(payment.user_id, payment.project_id, payment.package_type)
        increment_counter("payment_confirmations_total", labels={"outcome": "granted"})
        logger.info(
            f"Payment {payment.id} succeeded: "
            f"{'package ' + payment.package_type if payment.package_type else 'item ' + str(payment.content_item_id)} "
            f"granted to user {payment.user_id}"
        )
        return ConfirmationResult(
            payment_id=payment.id,
            status=PaymentStatus.SUCCEEDED.value,
            transitioned=True,
            granted_package=payment.package_type,
            content_item_id=payment.content_item_id,
        )

    def _fail(self, intent_id: str, reason: Optional[str]) -> ConfirmationResult:
        payment = self._get_payment(intent_id)
        won = self._transition(intent_id, PaymentStatus.FAILED, failure_reason=reason or "payment failed")
        self.db.refresh(payment)
        if won:
            increment_counter("payment_confirmations_total", labels={"outcome": "failed"})
            logger.info(f"Payment {payment.id} failed: {payment.failure_reason}")
        return ConfirmationResult(payment_id=payment.id, status=payment.status, transitioned=won)

    def confirm_payment(self, intent_id: str) -> ConfirmationResult:
        """
        Mark a payment succeeded and grant its entitlement exactly once.

        Safe to call any number of times for the same intent.
        """
        try:
            result = self._confirm(intent_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    def fail_payment(self, intent_id: str, reason: Optional[str] = None) -> ConfirmationResult:
        try:
            result = self._fail(intent_id, reason)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    # Client verification

    def verify_payment(self, intent_id: str, user: User, project_id: Optional[str] = None) -> ConfirmationResult:
        """
        Re-query the processor for the intent's status and apply it.

        Raises:
            PaymentNotFound, ProjectMismatch, PaymentNotCompleted, PaymentProcessorError
        """
        payment = self._get_payment(intent_id)
        if payment.user_id != user.id:
            raise PaymentNotFound(f"No payment for intent {intent_id}")
        if project_id is not None and payment.project_id != project_id:
            raise ProjectMismatch(
                "Payment does not belong to this project",
                details={"payment_intent_id": intent_id, "project_id": project_id},
            )

        if payment.status == PaymentStatus.SUCCEEDED.value:
            return ConfirmationResult(
                payment_id=payment.id,
                status=payment.status,
                transitioned=False,
                granted_package=payment.package_type,
                content_item_id=payment.content_item_id,
            )
        if payment.status == PaymentStatus.FAILED.value:
            raise PaymentNotCompleted(
                "Payment failed; start a new purchase to retry",
                details={"status": payment.status},
            )

        intent = self.processor.retrieve_intent(intent_id)
        if intent.succeeded:
            return self.confirm_payment(intent_id)
        if intent.failed:
            self.fail_payment(intent_id, intent.failure_reason or intent.status)
            raise PaymentNotCompleted("Payment was canceled", details={"status": intent.status})
        raise PaymentNotCompleted("Payment not completed", details={"status": intent.status})

    # Webhooks

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookResult:
        """
        Verify and apply a processor webhook.

        Signature failures raise SignatureInvalid before anything is read or
        written. Replays, unknown intents and unhandled event types are
        acknowledged without side effects.
        """
        try:
            event = self.processor.construct_webhook_event(payload, signature)
        except SignatureInvalid as e:
            increment_counter("webhook_events_total", labels={"type": "rejected"})
            logger.warning(f"Rejected webhook: {e.message}")
            raise
        increment_counter("webhook_events_total", labels={"type": event.event_type or "unknown"})

        if self.db.query(PaymentEvent.id).filter(PaymentEvent.provider_event_id == event.event_id).first():
            logger.info(f"Webhook event {event.event_id} already processed")
            return WebhookResult(event.event_id, event.event_type, "duplicate")

        try:
            outcome = self._apply_event(event)
            self.db.add(
                PaymentEvent(
                    provider_event_id=event.event_id,
                    event_type=event.event_type,
                    payment_intent_id=event.intent_id,
                    outcome=outcome,
                )
            )
            self.db.commit()
        except IntegrityError:
            # Same event delivered concurrently and recorded first by another worker
            self.db.rollback()
            logger.info(f"Webhook event {event.event_id} recorded concurrently")
            return WebhookResult(event.event_id, event.event_type, "duplicate")
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Webhook {event.event_type} ({event.event_id}): {outcome}")
        return WebhookResult(event.event_id, event.event_type, outcome)

    def _apply_event(self, event: WebhookEvent) -> str:
        if event.event_type not in SUCCEEDED_EVENTS | DECLINED_EVENTS | FAILED_EVENTS:
            return "ignored"
        if not event.intent_id:
            logger.warning(f"Webhook {event.event_type} ({event.event_id}) carries no payment intent")
            return "ignored"

        try:
            if event.event_type in SUCCEEDED_EVENTS:
                result = self._confirm(event.intent_id)
                return "granted" if result.transitioned else "already_processed"
            if event.event_type in DECLINED_EVENTS:
                return self._record_decline(event.intent_id, event.failure_reason or event.event_type)
            result = self._fail(event.intent_id, event.failure_reason or event.event_type)
            return "failed" if result.transitioned else "already_processed"
        except PaymentNotFound:
            logger.warning(f"Webhook {event.event_type} for unknown intent {event.intent_id}")
            return "unknown_intent"

    def _record_decline(self, intent_id: str, reason: str) -> str:
        """Note the decline on a pending payment without closing it"""
        payment = self._get_payment(intent_id)
        result = self.db.execute(
            update(Payment)
            .where(
                Payment.external_payment_intent_id == intent_id,
                Payment.status == PaymentStatus.PENDING.value,
            )
            .values(failure_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return "already_processed"
        increment_counter("payment_confirmations_total", labels={"outcome": "declined"})
        logger.info(f"Payment {payment.id} declined ({reason}); awaiting retry")
        return "declined"
