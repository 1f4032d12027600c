# barberbook/services/subscription_service.py
"""
Subscription lifecycle for providers.

A provider's ``subscription_status`` gates every provider-only write. It
moves only through verified gateway events (or the internal
registration-completion event) according to this table:

    subscription.authenticated   PENDING_MANDATE          -> TRIAL
    subscription.charged         PENDING_MANDATE | TRIAL  -> ACTIVE
    subscription.payment_failed  TRIAL | ACTIVE           -> FAILED
    subscription.cancelled       any                      -> CANCELLED
    registration.completed       PENDING_MANDATE          -> ACTIVE

Anything else is logged and acknowledged without a state change. An event
whose target is the current state is an idempotent no-op. Events older than
the last applied one are ignored, and redelivered gateway event ids are
answered from the webhook ledger.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import SubscriptionInactiveException
from ..models.provider import WRITE_ENABLED_STATES, Provider, SubscriptionState
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .payment_gateway import PaymentGateway, SubscriptionEvent, SubscriptionEventType
from .webhook_ledger_service import WebhookLedgerService

logger = logging.getLogger(__name__)


class SubscriptionEventOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED_UNKNOWN_SUBSCRIPTION = "ignored_unknown_subscription"
    IGNORED_STALE = "ignored_stale"
    IGNORED_INVALID_TRANSITION = "ignored_invalid_transition"
    IGNORED_DUPLICATE = "ignored_duplicate"
    IGNORED_UNSUPPORTED_EVENT = "ignored_unsupported_event"


_ALL_STATES: FrozenSet[SubscriptionState] = frozenset(SubscriptionState)

_FAILED_TRANSITION = (
    frozenset({SubscriptionState.TRIAL, SubscriptionState.ACTIVE}),
    SubscriptionState.FAILED,
)

SUBSCRIPTION_TRANSITIONS: Dict[
    SubscriptionEventType, Tuple[FrozenSet[SubscriptionState], SubscriptionState]
] = {
    SubscriptionEventType.AUTHENTICATED: (
        frozenset({SubscriptionState.PENDING_MANDATE}),
        SubscriptionState.TRIAL,
    ),
    SubscriptionEventType.CHARGED: (
        frozenset({SubscriptionState.PENDING_MANDATE, SubscriptionState.TRIAL}),
        SubscriptionState.ACTIVE,
    ),
    SubscriptionEventType.PAYMENT_FAILED: _FAILED_TRANSITION,
    SubscriptionEventType.PAYMENT_FAILED_LEGACY: _FAILED_TRANSITION,
    SubscriptionEventType.CANCELLED: (_ALL_STATES, SubscriptionState.CANCELLED),
    SubscriptionEventType.REGISTRATION_COMPLETED: (
        frozenset({SubscriptionState.PENDING_MANDATE}),
        SubscriptionState.ACTIVE,
    ),
}


def ensure_write_access(provider: Provider) -> None:
    """
    Allow provider-only writes in TRIAL and ACTIVE only.

    Raises:
        SubscriptionInactiveException: For every other subscription state
    """
    if provider.subscription_state not in WRITE_ENABLED_STATES:
        logger.info(
            "Provider %s blocked by subscription gate (%s)",
            provider.id,
            provider.subscription_status,
        )
        raise SubscriptionInactiveException(provider.id, provider.subscription_status)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SubscriptionService(BaseService):
    """Applies gateway subscription events to providers."""

    def __init__(self, db: Session, gateway: PaymentGateway):
        super().__init__(db)
        self.gateway = gateway
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.ledger = WebhookLedgerService(db)

    ensure_write_access = staticmethod(ensure_write_access)

    @BaseService.measure_operation("apply_subscription_event")
    def apply_event(self, event: SubscriptionEvent) -> SubscriptionEventOutcome:
        """Apply one verified event in its own unit of work."""
        with self.transaction():
            outcome, _ = self._apply_event(event)
        return outcome

    @BaseService.measure_operation("process_subscription_webhook")
    def process_webhook(
        self, payload: bytes, signature: Optional[str]
    ) -> SubscriptionEventOutcome:
        """
        Verify, record and apply an inbound subscription webhook.

        Raises:
            ExternalSignatureException: If the gateway rejects the signature
        """
        event = self.gateway.parse_subscription_event(payload, signature)
        if event is None:
            return SubscriptionEventOutcome.IGNORED_UNSUPPORTED_EVENT

        try:
            with self.transaction():
                entry = self.ledger.log_received(
                    source=self.gateway.name,
                    event_type=event.event_type.value,
                    payload=event.payload,
                    event_id=event.event_id,
                )
                if self.ledger.is_processed(entry):
                    self.logger.info(
                        "Duplicate subscription event %s ignored",
                        event.event_id,
                        extra={"event_id": event.event_id, "retry_count": entry.retry_count},
                    )
                    outcome = SubscriptionEventOutcome.IGNORED_DUPLICATE
                else:
                    outcome, provider_id = self._apply_event(event)
                    self.ledger.mark_processed(
                        entry, outcome=outcome.value, related_entity_id=provider_id
                    )
        except Exception as exc:
            self._record_failure(event, exc)
            raise

        prometheus_metrics.inc_subscription_event(event.event_type.value, outcome.value)
        return outcome

    def complete_registration(self, provider: Provider, occurred_at: Optional[datetime] = None):
        """Move a provider whose registration fee was verified to ACTIVE. Caller owns the transaction."""
        event = SubscriptionEvent(
            event_type=SubscriptionEventType.REGISTRATION_COMPLETED,
            subscription_id=provider.external_subscription_id or provider.id,
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )
        return self._transition(provider, event)

    # Internals

    def _apply_event(
        self, event: SubscriptionEvent
    ) -> Tuple[SubscriptionEventOutcome, Optional[str]]:
        provider = self.provider_repository.get_by_external_subscription_id(
            event.subscription_id, for_update=True
        )
        if provider is None:
            self.logger.info(
                "Subscription event for unknown subscription ignored",
                extra={
                    "event_type": event.event_type.value,
                    "subscription_id": event.subscription_id,
                },
            )
            return SubscriptionEventOutcome.IGNORED_UNKNOWN_SUBSCRIPTION, None
        return self._transition(provider, event), provider.id

    def _transition(self, provider: Provider, event: SubscriptionEvent) -> SubscriptionEventOutcome:
        last_applied = provider.last_event_at()
        occurred_at = _as_utc(event.occurred_at) if event.occurred_at else None
        if occurred_at is not None and last_applied is not None and occurred_at < last_applied:
            self.logger.info(
                "Stale subscription event ignored",
                extra={
                    "provider_id": provider.id,
                    "event_type": event.event_type.value,
                    "occurred_at": occurred_at.isoformat(),
                    "last_applied_at": last_applied.isoformat(),
                },
            )
            return SubscriptionEventOutcome.IGNORED_STALE

        allowed_from, target = SUBSCRIPTION_TRANSITIONS[event.event_type]
        current = provider.subscription_state

        if current != target and current not in allowed_from:
            self.logger.warning(
                "Subscription transition %s -> %s not allowed; event acknowledged",
                current.value,
                target.value,
                extra={"provider_id": provider.id, "event_type": event.event_type.value},
            )
            return SubscriptionEventOutcome.IGNORED_INVALID_TRANSITION

        if current != target:
            provider.subscription_status = target.value
            self.log_operation(
                "subscription_transition",
                provider_id=provider.id,
                from_state=current.value,
                to_state=target.value,
                event_type=event.event_type.value,
            )
        if occurred_at is not None:
            provider.subscription_event_at = occurred_at
        self.provider_repository.flush()
        return SubscriptionEventOutcome.APPLIED

    def _record_failure(self, event: SubscriptionEvent, exc: Exception) -> None:
        """Keep a failed ledger row so the redelivery is processed again."""
        self.logger.error(
            "Subscription webhook processing failed: %s",
            exc,
            extra={"event_id": event.event_id, "event_type": event.event_type.value},
        )
        try:
            with self.transaction():
                entry = self.ledger.log_received(
                    source=self.gateway.name,
                    event_type=event.event_type.value,
                    payload=event.payload,
                    event_id=event.event_id,
                )
                self.ledger.mark_failed(entry, error=str(exc))
        except Exception as ledger_exc:
            self.logger.error("Could not record failed webhook: %s", ledger_exc)
