"""Repository helpers for the webhook event ledger."""

from __future__ import annotations

import logging
from typing import cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.webhook_event import WebhookEvent
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    """Repository for webhook ledger queries."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, WebhookEvent)

    def find_by_source_and_event_id(self, source: str, event_id: str) -> WebhookEvent | None:
        """Find webhook event by source and gateway event ID."""
        try:
            result = (
                self.db.query(WebhookEvent)
                .filter(WebhookEvent.source == source, WebhookEvent.event_id == event_id)
                .first()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to load webhook event %s: %s", event_id, str(exc))
            raise RepositoryException("Failed to load webhook event") from exc
        return cast(WebhookEvent | None, result)
