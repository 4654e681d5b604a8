"""
Payment Gateway - interface to the external payment processor
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Dict, Any
import json
import logging

import stripe

from ..config import config
from ..exceptions import PaymentProcessorError, SignatureInvalid

logger = logging.getLogger(__name__)


@dataclass
class ProcessorIntent:
    """Processor-side view of a payment intent"""
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def failed(self) -> bool:
        # Stripe returns a failed intent to requires_payment_method; only
        # an explicit cancel is terminal from our side
        return self.status == "canceled"


@dataclass
class WebhookEvent:
    """Verified inbound processor event"""
    event_id: str
    event_type: str
    intent_id: Optional[str]
    metadata: Dict[str, str] = field(default_factory=dict)
    failure_reason: Optional[str] = None


class PaymentProcessor(ABC):
    """Abstract base class for payment processors"""

    @abstractmethod
    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> ProcessorIntent:
        """Create a payment intent and return its id and client secret"""

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        """Fetch the authoritative status of an intent"""

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """Verify webhook authenticity and parse it. Raises SignatureInvalid."""


class StripeProcessor(PaymentProcessor):
    """Stripe payment processor"""

    def __init__(self, api_key: Optional[str], webhook_secret: Optional[str], timeout: float = 10.0, is_test: bool = False):
        """
        Initialize Stripe processor

        Args:
            api_key: Stripe API key (test or live); only intent calls need it
            webhook_secret: Stripe webhook signing secret
            timeout: Seconds before a request to Stripe is abandoned
            is_test: Whether using test mode
        """
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.is_test = is_test
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = 1

    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> ProcessorIntent:
        """Create a Stripe PaymentIntent"""
        self._require_api_key()
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {e}")
            raise PaymentProcessorError(
                "Payment processor unavailable, please retry",
                details={"processor_error": type(e).__name__},
            ) from e
        return self._to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        """Retrieve a Stripe PaymentIntent"""
        self._require_api_key()
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            logger.warning(f"Stripe rejected intent lookup for {intent_id}: {e}")
            raise PaymentProcessorError(
                "Payment intent could not be retrieved",
                details={"payment_intent_id": intent_id},
            ) from e
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent retrieval failed: {e}")
            raise PaymentProcessorError("Payment processor unavailable, please retry") from e
        return self._to_intent(intent)

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """Verify Stripe webhook signature and parse the event"""
        if not self.webhook_secret:
            logger.error("Stripe webhook secret not configured; rejecting webhook")
            raise SignatureInvalid("Webhook verification is not configured")
        if not signature:
            raise SignatureInvalid("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid("Invalid webhook signature") from e
        except ValueError as e:
            raise SignatureInvalid("Malformed webhook payload") from e

        return parse_stripe_event(json.loads(payload))

    def _require_api_key(self):
        if not self.api_key:
            raise PaymentProcessorError("Payment processing is not configured")

    @staticmethod
    def _to_intent(intent) -> ProcessorIntent:
        last_error = getattr(intent, "last_payment_error", None)
        return ProcessorIntent(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            client_secret=getattr(intent, "client_secret", None),
            metadata={k: str(v) for k, v in (intent.metadata or {}).items()},
            failure_reason=getattr(last_error, "message", None) if last_error else None,
        )


def parse_stripe_event(payload: Dict[str, Any]) -> WebhookEvent:
    """Map a raw Stripe event body to a WebhookEvent"""
    data = payload.get("data", {}).get("object", {}) or {}
    event_type = payload.get("type", "")
    intent_id = data.get("id") if data.get("object") == "payment_intent" else None
    last_error = data.get("last_payment_error") or {}
    return WebhookEvent(
        event_id=payload.get("id", ""),
        event_type=event_type,
        intent_id=intent_id,
        metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
        failure_reason=last_error.get("message") or data.get("cancellation_reason"),
    )


@lru_cache(maxsize=1)
def _stripe_processor() -> StripeProcessor:
    return StripeProcessor(
        api_key=config.stripe_secret_key(),
        webhook_secret=config.stripe_webhook_secret(),
        timeout=config.PAYMENT_PROCESSOR_TIMEOUT,
        is_test=not config.is_prod,
    )


def get_payment_processor() -> PaymentProcessor:
    """FastAPI dependency returning the configured processor"""
    return _stripe_processor()
