"""Service for recording inbound gateway webhooks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.webhook_event import WebhookEvent
from ..repositories.factory import RepositoryFactory
from .base import BaseService

STATUS_RECEIVED = "received"
STATUS_PROCESSED = "processed"
STATUS_FAILED = "failed"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLedgerService(BaseService):
    """
    Ledger of gateway events keyed by (source, event id).

    Callers own the transaction; every method here only flushes.
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = RepositoryFactory.create_webhook_event_repository(db)

    @BaseService.measure_operation("webhook_ledger.log_received")
    def log_received(
        self,
        *,
        source: str,
        event_type: str,
        payload: dict[str, Any],
        event_id: str | None = None,
    ) -> WebhookEvent:
        """
        Log a received webhook before processing.

        A redelivered event id returns the existing row with its retry count bumped.
        """
        if event_id:
            existing = self.repository.find_by_source_and_event_id(source, event_id)
            if existing is not None:
                existing.retry_count = (existing.retry_count or 0) + 1
                self.repository.flush()
                return existing

        try:
            return self.repository.create(
                source=source,
                event_type=event_type or "unknown",
                event_id=event_id,
                payload=payload,
                status=STATUS_RECEIVED,
                received_at=_now_utc(),
                retry_count=0,
            )
        except RepositoryException as exc:
            # Another worker recorded the same event id first
            if event_id and isinstance(exc.__cause__, IntegrityError):
                existing = self.repository.find_by_source_and_event_id(source, event_id)
                if existing is not None:
                    existing.retry_count = (existing.retry_count or 0) + 1
                    self.repository.flush()
                    return existing
            raise

    @staticmethod
    def is_processed(event: WebhookEvent) -> bool:
        return event.status == STATUS_PROCESSED

    @BaseService.measure_operation("webhook_ledger.mark_processed")
    def mark_processed(
        self,
        event: WebhookEvent,
        *,
        outcome: str,
        related_entity_id: str | None = None,
    ) -> WebhookEvent:
        """Mark webhook as successfully processed."""
        event.status = STATUS_PROCESSED
        event.outcome = outcome
        event.processed_at = _now_utc()
        event.processing_error = None
        event.related_entity_id = related_entity_id
        self.repository.flush()
        return event

    @BaseService.measure_operation("webhook_ledger.mark_failed")
    def mark_failed(self, event: WebhookEvent, *, error: str) -> WebhookEvent:
        """Mark webhook as failed; a redelivery will process it again."""
        event.status = STATUS_FAILED
        event.processing_error = error
        event.processed_at = _now_utc()
        self.repository.flush()
        return event
