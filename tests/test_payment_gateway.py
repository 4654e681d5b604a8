"""
Tests for the Stripe processor adapter (Stripe API calls mocked)
"""
import hashlib
import hmac
import inspect
import json
import time
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from content_vault.exceptions import PaymentProcessorError, SignatureInvalid
from content_vault.config import config
from content_vault.services.payment_gateway import (
    ProcessorIntent,
    StripeProcessor,
    _stripe_processor,
    get_payment_processor,
    parse_stripe_event,
)

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _stripe_intent(**overrides):
    values = dict(
        id="pi_123",
        status="requires_payment_method",
        amount=19900,
        currency="usd",
        client_secret="pi_123_secret_abc",
        metadata={"project_id": "p1"},
        last_payment_error=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def stripe_processor():
    return StripeProcessor(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET, timeout=5, is_test=True)


class TestIntents:

    def test_create_intent(self, stripe_processor):
        with patch("stripe.PaymentIntent.create", return_value=_stripe_intent()) as create:
            intent = stripe_processor.create_intent(19900, "usd", {"project_id": "p1"})

        assert intent == ProcessorIntent(
            id="pi_123",
            status="requires_payment_method",
            amount=19900,
            currency="usd",
            client_secret="pi_123_secret_abc",
            metadata={"project_id": "p1"},
        )
        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_123"
        assert kwargs["amount"] == 19900
        assert kwargs["metadata"] == {"project_id": "p1"}

    def test_create_intent_connection_error(self, stripe_processor):
        with patch("stripe.PaymentIntent.create", side_effect=stripe.APIConnectionError("timed out")):
            with pytest.raises(PaymentProcessorError) as exc_info:
                stripe_processor.create_intent(2500, "usd", {})

        assert exc_info.value.retryable is True
        assert exc_info.value.details["processor_error"] == "APIConnectionError"

    def test_retrieve_intent_status(self, stripe_processor):
        with patch("stripe.PaymentIntent.retrieve", return_value=_stripe_intent(status="succeeded")):
            intent = stripe_processor.retrieve_intent("pi_123")

        assert intent.succeeded
        assert not intent.failed

    def test_retrieve_canceled_intent_carries_reason(self, stripe_processor):
        error = SimpleNamespace(message="Your card was declined.")
        with patch(
            "stripe.PaymentIntent.retrieve",
            return_value=_stripe_intent(status="canceled", last_payment_error=error),
        ):
            intent = stripe_processor.retrieve_intent("pi_123")

        assert intent.failed
        assert intent.failure_reason == "Your card was declined."

    def test_retrieve_unknown_intent(self, stripe_processor):
        with patch("stripe.PaymentIntent.retrieve", side_effect=stripe.InvalidRequestError("No such intent", "id")):
            with pytest.raises(PaymentProcessorError):
                stripe_processor.retrieve_intent("pi_missing")

    def test_missing_api_key_blocks_intent_calls(self):
        processor = StripeProcessor(api_key=None, webhook_secret=WEBHOOK_SECRET)
        with patch("stripe.PaymentIntent.create") as create:
            with pytest.raises(PaymentProcessorError):
                processor.create_intent(2500, "usd", {})

        create.assert_not_called()


class TestWebhookVerification:

    def _payload(self) -> bytes:
        return json.dumps({
            "id": "evt_1",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123", "object": "payment_intent", "metadata": {"user_id": 7}}},
        }).encode("utf-8")

    def test_valid_signature(self, stripe_processor):
        payload = self._payload()

        event = stripe_processor.construct_webhook_event(payload, _sign(payload))

        assert event.event_id == "evt_1"
        assert event.event_type == "payment_intent.succeeded"
        assert event.intent_id == "pi_123"
        assert event.metadata == {"user_id": "7"}

    def test_forged_signature(self, stripe_processor):
        payload = self._payload()
        with pytest.raises(SignatureInvalid):
            stripe_processor.construct_webhook_event(payload, _sign(payload, secret="whsec_other"))

    def test_tampered_payload(self, stripe_processor):
        signature = _sign(self._payload())
        tampered = self._payload().replace(b"pi_123", b"pi_999")
        with pytest.raises(SignatureInvalid):
            stripe_processor.construct_webhook_event(tampered, signature)

    def test_missing_signature(self, stripe_processor):
        with pytest.raises(SignatureInvalid):
            stripe_processor.construct_webhook_event(self._payload(), None)

    def test_verifies_without_api_key(self):
        processor = StripeProcessor(api_key=None, webhook_secret=WEBHOOK_SECRET)
        payload = self._payload()

        event = processor.construct_webhook_event(payload, _sign(payload))

        assert event.intent_id == "pi_123"

    def test_unconfigured_secret_rejects(self):
        processor = StripeProcessor(api_key="sk_test_123", webhook_secret=None)
        payload = self._payload()
        with pytest.raises(SignatureInvalid):
            processor.construct_webhook_event(payload, _sign(payload))


class TestParseEvent:

    def test_non_intent_object(self):
        event = parse_stripe_event({
            "id": "evt_2",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1", "object": "charge"}},
        })
        assert event.intent_id is None
        assert event.event_type == "charge.refunded"

    def test_cancellation_reason_used_as_failure(self):
        event = parse_stripe_event({
            "id": "evt_3",
            "type": "payment_intent.canceled",
            "data": {"object": {"id": "pi_1", "object": "payment_intent", "cancellation_reason": "abandoned"}},
        })
        assert event.failure_reason == "abandoned"


class TestProcessorDependency:

    def test_webhook_secret_alone_is_enough(self, monkeypatch):
        monkeypatch.setattr(config, "STRIPE_SECRET_KEY", None)
        monkeypatch.setattr(config, "STRIPE_TEST_SECRET_KEY", None)
        monkeypatch.setattr(config, "STRIPE_TEST_WEBHOOK_SECRET", WEBHOOK_SECRET)
        _stripe_processor.cache_clear()
        try:
            processor = get_payment_processor()
            payload = json.dumps({
                "id": "evt_9",
                "type": "payment_intent.succeeded",
                "data": {"object": {"id": "pi_9", "object": "payment_intent"}},
            }).encode("utf-8")

            assert processor.construct_webhook_event(payload, _sign(payload)).intent_id == "pi_9"
            with pytest.raises(PaymentProcessorError):
                processor.retrieve_intent("pi_9")
        finally:
            _stripe_processor.cache_clear()

    def test_processor_calls_stay_off_the_event_loop(self, app):
        """Handlers that reach the processor over the network run in the threadpool"""
        calling = [
            route for route in app.routes
            if getattr(route, "dependant", None) is not None
            and any(dep.call is get_payment_processor for dep in route.dependant.dependencies)
            and route.path != "/api/payment-webhook"
        ]

        assert {route.path for route in calling} >= {
            "/api/content/{content_id}/create-payment-intent",
            "/api/projects/{project_id}/create-payment-intent",
            "/api/projects/{project_id}/verify-payment",
        }
        for route in calling:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
