import hashlib
import hmac
import json
import time
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from barberbook.core.config import Settings
from barberbook.core.exceptions import ExternalSignatureException, PaymentGatewayException
from barberbook.services.payment_gateway import StripePaymentGateway, SubscriptionEventType

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def gateway() -> StripePaymentGateway:
    return StripePaymentGateway(
        Settings(
            stripe_secret_key="sk_test_123",
            stripe_webhook_secret=WEBHOOK_SECRET,
            stripe_subscription_price_id="price_123",
        )
    )


def _sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _event(event_type: str, obj: dict, created: int = 1_700_000_000) -> dict:
    return {"id": "evt_1", "type": event_type, "created": created, "data": {"object": obj}}


class TestNormalizeEvent:
    @pytest.mark.parametrize(
        "status, expected",
        [
            ("trialing", SubscriptionEventType.AUTHENTICATED),
            ("active", SubscriptionEventType.CHARGED),
            ("past_due", SubscriptionEventType.PAYMENT_FAILED),
            ("canceled", SubscriptionEventType.CANCELLED),
        ],
    )
    def test_subscription_status_updates(self, status, expected):
        event = StripePaymentGateway.normalize_event(
            _event("customer.subscription.updated", {"id": "sub_1", "status": status})
        )
        assert event.event_type is expected
        assert event.subscription_id == "sub_1"
        assert event.event_id == "evt_1"
        assert event.occurred_at.timestamp() == 1_700_000_000

    def test_deleted_subscription_is_cancelled(self):
        event = StripePaymentGateway.normalize_event(
            _event("customer.subscription.deleted", {"id": "sub_1", "status": "active"})
        )
        assert event.event_type is SubscriptionEventType.CANCELLED

    def test_invoice_events_use_subscription_reference(self):
        event = StripePaymentGateway.normalize_event(
            _event("invoice.payment_failed", {"id": "in_1", "subscription": "sub_9"})
        )
        assert event.event_type is SubscriptionEventType.PAYMENT_FAILED
        assert event.subscription_id == "sub_9"

    def test_unrelated_events_are_ignored(self):
        assert StripePaymentGateway.normalize_event(_event("charge.refunded", {"id": "ch_1"})) is None
        assert (
            StripePaymentGateway.normalize_event(
                _event("invoice.paid", {"id": "in_1", "subscription": None})
            )
            is None
        )


class TestParseSubscriptionEvent:
    def test_valid_signature(self, gateway):
        payload = json.dumps(
            _event("customer.subscription.updated", {"id": "sub_1", "status": "active"})
        )
        event = gateway.parse_subscription_event(payload.encode("utf-8"), _sign(payload))
        assert event.event_type is SubscriptionEventType.CHARGED

    def test_tampered_payload_rejected(self, gateway):
        payload = json.dumps(
            _event("customer.subscription.updated", {"id": "sub_1", "status": "active"})
        )
        signature = _sign(payload)
        tampered = payload.replace("sub_1", "sub_2")
        with pytest.raises(ExternalSignatureException):
            gateway.parse_subscription_event(tampered.encode("utf-8"), signature)

    def test_non_utf8_payload_rejected(self, gateway):
        with pytest.raises(ExternalSignatureException) as exc_info:
            gateway.parse_subscription_event(b"\xff\xfe\x00garbage", "t=1,v1=deadbeef")
        assert exc_info.value.code == "INVALID_SIGNATURE"
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_wrong_secret_rejected(self, gateway):
        payload = json.dumps(_event("invoice.paid", {"subscription": "sub_1"}))
        with pytest.raises(ExternalSignatureException):
            gateway.parse_subscription_event(
                payload.encode("utf-8"), _sign(payload, secret="whsec_other")
            )

    def test_expired_signature_rejected(self, gateway):
        payload = json.dumps(_event("invoice.paid", {"subscription": "sub_1"}))
        stale = _sign(payload, timestamp=int(time.time()) - 3600)
        with pytest.raises(ExternalSignatureException):
            gateway.parse_subscription_event(payload.encode("utf-8"), stale)

    def test_missing_signature_rejected(self, gateway):
        with pytest.raises(ExternalSignatureException):
            gateway.parse_subscription_event(b"{}", None)

    def test_unconfigured_secret(self):
        unconfigured = StripePaymentGateway(Settings(stripe_webhook_secret=None))
        with pytest.raises(PaymentGatewayException):
            unconfigured.parse_subscription_event(b"{}", "t=1,v1=abc")


class TestVerifyPayment:
    def test_succeeded_intent(self, gateway):
        intent = SimpleNamespace(
            status="succeeded", amount_received=45000, currency="inr", payment_method="pm_1"
        )
        with patch("stripe.PaymentIntent.retrieve", return_value=intent):
            verified = gateway.verify_payment("pi_1")
        assert verified.succeeded
        assert verified.amount == Decimal("450.00")
        assert verified.currency == "INR"
        assert verified.payment_method == "pm_1"

    def test_unknown_reference_is_unverified(self, gateway):
        error = stripe.InvalidRequestError("No such payment_intent", "id")
        with patch("stripe.PaymentIntent.retrieve", side_effect=error):
            verified = gateway.verify_payment("pi_missing")
        assert not verified.succeeded

    def test_gateway_outage(self, gateway):
        with patch("stripe.PaymentIntent.retrieve", side_effect=stripe.APIConnectionError("down")):
            with pytest.raises(PaymentGatewayException):
                gateway.verify_payment("pi_1")

    def test_unconfigured_gateway(self):
        with pytest.raises(PaymentGatewayException):
            StripePaymentGateway(Settings(stripe_secret_key=None)).verify_payment("pi_1")
