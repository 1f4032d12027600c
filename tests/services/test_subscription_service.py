from datetime import datetime, timedelta, timezone

import pytest

from barberbook.core.exceptions import ExternalSignatureException, SubscriptionInactiveException
from barberbook.models import Provider, SubscriptionState, WebhookEvent
from barberbook.services.payment_gateway import SubscriptionEvent, SubscriptionEventType
from barberbook.services.subscription_service import (
    SubscriptionEventOutcome,
    SubscriptionService,
    ensure_write_access,
)
from tests.factories import VALID_SIGNATURE, create_provider, webhook_body

T0 = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def subscription_service(db, gateway) -> SubscriptionService:
    return SubscriptionService(db, gateway)


def _provider(db, state: SubscriptionState, subscription_id: str = "sub_1") -> Provider:
    return create_provider(db, status=state, external_subscription_id=subscription_id)


def _event(event_type, subscription_id="sub_1", occurred_at=None) -> SubscriptionEvent:
    return SubscriptionEvent(
        event_type=event_type, subscription_id=subscription_id, occurred_at=occurred_at
    )


class TestApplyEvent:
    @pytest.mark.parametrize(
        "start, event_type, expected",
        [
            (
                SubscriptionState.PENDING_MANDATE,
                SubscriptionEventType.AUTHENTICATED,
                SubscriptionState.TRIAL,
            ),
            (SubscriptionState.TRIAL, SubscriptionEventType.CHARGED, SubscriptionState.ACTIVE),
            (
                SubscriptionState.PENDING_MANDATE,
                SubscriptionEventType.CHARGED,
                SubscriptionState.ACTIVE,
            ),
            (
                SubscriptionState.ACTIVE,
                SubscriptionEventType.PAYMENT_FAILED,
                SubscriptionState.FAILED,
            ),
            (
                SubscriptionState.TRIAL,
                SubscriptionEventType.PAYMENT_FAILED_LEGACY,
                SubscriptionState.FAILED,
            ),
            (SubscriptionState.FAILED, SubscriptionEventType.CANCELLED, SubscriptionState.CANCELLED),
        ],
    )
    def test_transitions(self, db, subscription_service, start, event_type, expected):
        provider = _provider(db, start)

        outcome = subscription_service.apply_event(_event(event_type))

        assert outcome is SubscriptionEventOutcome.APPLIED
        db.refresh(provider)
        assert provider.subscription_status == expected.value

    def test_unknown_subscription_is_acknowledged_without_changes(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.TRIAL, "sub_known")

        outcome = subscription_service.apply_event(
            _event(SubscriptionEventType.CHARGED, subscription_id="sub_missing")
        )

        assert outcome is SubscriptionEventOutcome.IGNORED_UNKNOWN_SUBSCRIPTION
        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.TRIAL.value

    def test_repeated_event_is_a_no_op(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.TRIAL)

        subscription_service.apply_event(_event(SubscriptionEventType.CHARGED))
        outcome = subscription_service.apply_event(_event(SubscriptionEventType.CHARGED))

        assert outcome is SubscriptionEventOutcome.APPLIED
        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.ACTIVE.value

    def test_disallowed_transition_is_ignored(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.CANCELLED)

        outcome = subscription_service.apply_event(_event(SubscriptionEventType.CHARGED))

        assert outcome is SubscriptionEventOutcome.IGNORED_INVALID_TRANSITION
        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.CANCELLED.value

    def test_failed_provider_cannot_recover_through_authenticated(self, db, subscription_service):
        _provider(db, SubscriptionState.FAILED)
        outcome = subscription_service.apply_event(_event(SubscriptionEventType.AUTHENTICATED))
        assert outcome is SubscriptionEventOutcome.IGNORED_INVALID_TRANSITION

    def test_stale_event_does_not_overwrite_newer_state(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.TRIAL)

        subscription_service.apply_event(
            _event(SubscriptionEventType.CHARGED, occurred_at=T0 + timedelta(minutes=5))
        )
        outcome = subscription_service.apply_event(
            _event(SubscriptionEventType.PAYMENT_FAILED, occurred_at=T0)
        )

        assert outcome is SubscriptionEventOutcome.IGNORED_STALE
        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.ACTIVE.value

    def test_newer_event_applies(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.TRIAL)

        subscription_service.apply_event(_event(SubscriptionEventType.CHARGED, occurred_at=T0))
        subscription_service.apply_event(
            _event(SubscriptionEventType.PAYMENT_FAILED, occurred_at=T0 + timedelta(days=30))
        )

        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.FAILED.value
        assert provider.last_event_at() == T0 + timedelta(days=30)


class TestProcessWebhook:
    def test_unknown_subscription_returns_success(self, db, subscription_service):
        outcome = subscription_service.process_webhook(
            webhook_body("subscription.charged", "sub_nobody", event_id="evt_1"), VALID_SIGNATURE
        )

        assert outcome is SubscriptionEventOutcome.IGNORED_UNKNOWN_SUBSCRIPTION
        assert db.query(Provider).count() == 0
        entry = db.query(WebhookEvent).one()
        assert entry.status == "processed"
        assert entry.outcome == outcome.value

    def test_invalid_signature(self, db, subscription_service):
        _provider(db, SubscriptionState.TRIAL)
        with pytest.raises(ExternalSignatureException):
            subscription_service.process_webhook(
                webhook_body("subscription.charged", "sub_1"), "forged"
            )
        assert db.query(WebhookEvent).count() == 0

    def test_redelivery_is_deduplicated(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.TRIAL)
        body = webhook_body("subscription.charged", "sub_1", event_id="evt_42")

        first = subscription_service.process_webhook(body, VALID_SIGNATURE)
        second = subscription_service.process_webhook(body, VALID_SIGNATURE)

        assert first is SubscriptionEventOutcome.APPLIED
        assert second is SubscriptionEventOutcome.IGNORED_DUPLICATE
        entry = db.query(WebhookEvent).one()
        assert entry.retry_count == 1
        assert entry.related_entity_id == provider.id

    def test_unsupported_event(self, subscription_service):
        outcome = subscription_service.process_webhook(
            webhook_body("subscription.paused", "sub_1"), VALID_SIGNATURE
        )
        assert outcome is SubscriptionEventOutcome.IGNORED_UNSUPPORTED_EVENT

    def test_out_of_order_delivery(self, db, subscription_service):
        provider = _provider(db, SubscriptionState.PENDING_MANDATE)
        created = int(T0.timestamp())

        subscription_service.process_webhook(
            webhook_body("subscription.charged", "sub_1", "evt_2", created + 60), VALID_SIGNATURE
        )
        late = subscription_service.process_webhook(
            webhook_body("subscription.authenticated", "sub_1", "evt_1", created), VALID_SIGNATURE
        )

        assert late is SubscriptionEventOutcome.IGNORED_STALE
        db.refresh(provider)
        assert provider.subscription_status == SubscriptionState.ACTIVE.value


def test_write_gate():
    for state in SubscriptionState:
        provider = Provider(id="p", subscription_status=state.value)
        assert provider.can_write is (state in (SubscriptionState.TRIAL, SubscriptionState.ACTIVE))


@pytest.mark.parametrize(
    "state",
    [SubscriptionState.PENDING_MANDATE, SubscriptionState.FAILED, SubscriptionState.CANCELLED],
)
def test_ensure_write_access_blocks_inactive_states(state):
    provider = Provider(id="p", subscription_status=state.value)

    with pytest.raises(SubscriptionInactiveException) as exc_info:
        ensure_write_access(provider)

    assert exc_info.value.code == "SubscriptionInactive"
    assert exc_info.value.details["subscription_status"] == state.value


@pytest.mark.parametrize("state", [SubscriptionState.TRIAL, SubscriptionState.ACTIVE])
def test_ensure_write_access_allows_live_states(state):
    ensure_write_access(Provider(id="p", subscription_status=state.value))
