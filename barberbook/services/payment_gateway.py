# barberbook/services/payment_gateway.py
"""
Payment gateway boundary.

Services never talk to the gateway SDK directly: they receive a
``PaymentGateway`` and work with the small value types defined here. The
production implementation wraps Stripe; tests pass a fake.

Subscription webhooks are normalised into ``SubscriptionEvent`` so the
subscription state machine only ever sees gateway-neutral event types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
import json
import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from ..core.config import Settings
from ..core.exceptions import ExternalSignatureException, PaymentGatewayException

logger = logging.getLogger(__name__)


class SubscriptionEventType(str, Enum):
    AUTHENTICATED = "subscription.authenticated"
    CHARGED = "subscription.charged"
    PAYMENT_FAILED = "subscription.payment_failed"
    PAYMENT_FAILED_LEGACY = "payment.failed"
    CANCELLED = "subscription.cancelled"
    # Raised internally when the one-time registration fee is verified
    REGISTRATION_COMPLETED = "registration.completed"


@dataclass(frozen=True)
class VerifiedPayment:
    """Result of asking the gateway about a payment reference."""

    reference: str
    succeeded: bool
    amount: Decimal
    currency: str
    payment_method: Optional[str] = None
    gateway: str = "stripe"


@dataclass(frozen=True)
class SubscriptionMandate:
    """Identifiers returned when a recurring mandate is opened."""

    customer_id: str
    subscription_id: str
    trial_ends_at: Optional[datetime] = None
    mandate_reference: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionEvent:
    """A verified, normalised subscription lifecycle event."""

    event_type: SubscriptionEventType
    subscription_id: str
    event_id: Optional[str] = None
    occurred_at: Optional[datetime] = None
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentContext:
    """A verified payment the booking coordinator records alongside a booking."""

    transaction_id: str
    amount: Decimal
    currency: str
    gateway: str
    payment_method: Optional[str] = None

    @classmethod
    def from_verified(cls, payment: VerifiedPayment) -> "PaymentContext":
        return cls(
            transaction_id=payment.reference,
            amount=payment.amount,
            currency=payment.currency,
            gateway=payment.gateway,
            payment_method=payment.payment_method,
        )


class PaymentGateway(ABC):
    """Opaque signer/verifier for payments, mandates and webhooks."""

    name: str = "gateway"

    @abstractmethod
    def verify_payment(self, reference: str) -> VerifiedPayment:
        """Look up a payment by reference and report whether it succeeded."""

    @abstractmethod
    def create_subscription(
        self,
        *,
        provider_name: str,
        email: Optional[str],
        mobile_number: str,
        trial_days: int,
    ) -> SubscriptionMandate:
        """Open a recurring mandate with a trial period."""

    @abstractmethod
    def parse_subscription_event(
        self, payload: bytes, signature: Optional[str]
    ) -> Optional[SubscriptionEvent]:
        """
        Verify ``payload`` against ``signature`` and normalise it.

        Returns ``None`` for verified events that carry no subscription
        lifecycle meaning.

        Raises:
            ExternalSignatureException: If the signature does not verify
        """


def _minor_to_decimal(amount: Optional[int]) -> Decimal:
    return (Decimal(int(amount or 0)) / Decimal(100)).quantize(Decimal("0.01"))


def _epoch_to_utc(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


# Stripe subscription statuses mapped onto lifecycle events
_STRIPE_SUBSCRIPTION_STATUS_EVENTS = {
    "trialing": SubscriptionEventType.AUTHENTICATED,
    "active": SubscriptionEventType.CHARGED,
    "past_due": SubscriptionEventType.PAYMENT_FAILED,
    "unpaid": SubscriptionEventType.PAYMENT_FAILED,
    "canceled": SubscriptionEventType.CANCELLED,
    "incomplete_expired": SubscriptionEventType.CANCELLED,
}

_STRIPE_INVOICE_EVENTS = {
    "invoice.paid": SubscriptionEventType.CHARGED,
    "invoice.payment_succeeded": SubscriptionEventType.CHARGED,
    "invoice.payment_failed": SubscriptionEventType.PAYMENT_FAILED,
}


class StripePaymentGateway(PaymentGateway):
    """``PaymentGateway`` backed by the Stripe API."""

    name = "stripe"

    def __init__(self, config: Settings):
        self.config = config
        self.configured = False
        if config.stripe_secret_key:
            stripe.api_key = config.stripe_secret_key.get_secret_value()
            stripe.max_network_retries = 1
            self.configured = True
        else:
            logger.warning("Stripe secret key not configured - gateway calls will fail")

    def _require_configured(self) -> None:
        if not self.configured:
            raise PaymentGatewayException("Payment gateway is not configured")

    def verify_payment(self, reference: str) -> VerifiedPayment:
        self._require_configured()
        try:
            intent = stripe.PaymentIntent.retrieve(reference)
        except stripe.InvalidRequestError as exc:
            # Unknown references are unverified payments, not outages
            logger.info("Payment reference %s not found at gateway: %s", reference, exc)
            return VerifiedPayment(
                reference=reference,
                succeeded=False,
                amount=Decimal("0.00"),
                currency=self.config.currency,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe payment lookup failed for %s: %s", reference, exc)
            raise PaymentGatewayException(f"Payment verification failed: {exc}") from exc

        payment_method = getattr(intent, "payment_method", None)
        return VerifiedPayment(
            reference=reference,
            succeeded=intent.status == "succeeded",
            amount=_minor_to_decimal(getattr(intent, "amount_received", 0)),
            currency=str(getattr(intent, "currency", self.config.currency)).upper(),
            payment_method=payment_method if isinstance(payment_method, str) else None,
        )

    def create_subscription(
        self,
        *,
        provider_name: str,
        email: Optional[str],
        mobile_number: str,
        trial_days: int,
    ) -> SubscriptionMandate:
        self._require_configured()
        if not self.config.stripe_subscription_price_id:
            raise PaymentGatewayException("Subscription price is not configured")
        try:
            customer = stripe.Customer.create(
                name=provider_name,
                email=email,
                phone=mobile_number,
                metadata={"role": "provider"},
            )
            subscription = stripe.Subscription.create(
                customer=customer.id,
                items=[{"price": self.config.stripe_subscription_price_id}],
                trial_period_days=trial_days,
                payment_behavior="default_incomplete",
                payment_settings={"save_default_payment_method": "on_subscription"},
                trial_settings={"end_behavior": {"missing_payment_method": "cancel"}},
            )
        except stripe.StripeError as exc:
            logger.error("Stripe subscription creation failed: %s", exc)
            raise PaymentGatewayException(f"Could not open subscription mandate: {exc}") from exc

        trial_end = _epoch_to_utc(getattr(subscription, "trial_end", None))
        if trial_end is None and trial_days:
            trial_end = datetime.now(timezone.utc) + timedelta(days=trial_days)
        setup_intent = getattr(subscription, "pending_setup_intent", None)
        return SubscriptionMandate(
            customer_id=customer.id,
            subscription_id=subscription.id,
            trial_ends_at=trial_end,
            mandate_reference=setup_intent if isinstance(setup_intent, str) else None,
        )

    def parse_subscription_event(
        self, payload: bytes, signature: Optional[str]
    ) -> Optional[SubscriptionEvent]:
        secret = self.config.stripe_webhook_secret
        if not secret:
            raise PaymentGatewayException("Webhook secret not configured")
        if not signature:
            raise ExternalSignatureException("Missing webhook signature")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Webhook payload is not UTF-8: %s", exc)
            raise ExternalSignatureException("Webhook payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                secret.get_secret_value(),
                self.config.stripe_webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("Invalid webhook signature: %s", exc)
            raise ExternalSignatureException() from exc

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise ExternalSignatureException("Webhook payload is not valid JSON") from exc
        return self.normalize_event(event)

    @staticmethod
    def normalize_event(event: Mapping[str, Any]) -> Optional[SubscriptionEvent]:
        """Map a Stripe event dict onto a ``SubscriptionEvent``."""
        event_type = str(event.get("type", ""))
        obj = (event.get("data") or {}).get("object") or {}

        normalized: Optional[SubscriptionEventType] = None
        subscription_id: Optional[str] = None

        if event_type in ("customer.subscription.created", "customer.subscription.updated"):
            normalized = _STRIPE_SUBSCRIPTION_STATUS_EVENTS.get(str(obj.get("status")))
            subscription_id = obj.get("id")
        elif event_type == "customer.subscription.deleted":
            normalized = SubscriptionEventType.CANCELLED
            subscription_id = obj.get("id")
        elif event_type in _STRIPE_INVOICE_EVENTS:
            normalized = _STRIPE_INVOICE_EVENTS[event_type]
            subscription_id = obj.get("subscription") or (
                ((obj.get("parent") or {}).get("subscription_details") or {}).get("subscription")
            )

        if normalized is None or not subscription_id:
            logger.info("Ignoring non-subscription gateway event %s", event_type)
            return None

        return SubscriptionEvent(
            event_type=normalized,
            subscription_id=str(subscription_id),
            event_id=event.get("id"),
            occurred_at=_epoch_to_utc(event.get("created")),
            payload=dict(event),
        )
