# barberbook/repositories/provider_repository.py
"""Data access for providers and their subscription gate."""

import logging
from typing import Optional, cast

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.provider import Provider
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProviderRepository(BaseRepository[Provider]):
    def __init__(self, db: Session):
        super().__init__(db, Provider)

    def lock_for_booking(self, provider_id: str) -> Optional[Provider]:
        """
        Load the provider row inside the current transaction with a write lock.

        Concurrent booking writers for the same provider queue on this lock.
        """
        return self.get_by_id(provider_id, load_relationships=False, for_update=True)

    def get_by_external_subscription_id(
        self, external_subscription_id: str, for_update: bool = False
    ) -> Optional[Provider]:
        try:
            query = self.db.query(Provider).filter(
                Provider.external_subscription_id == external_subscription_id
            )
            if for_update and supports_row_locks(self.db):
                query = query.with_for_update()
            return cast(Optional[Provider], query.first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading provider by subscription: {str(e)}")
            raise RepositoryException(f"Failed to load provider: {str(e)}")

    def find_by_contact(self, email: Optional[str], mobile_number: str) -> Optional[Provider]:
        """Return a provider already registered with this email or mobile number."""
        try:
            clauses = [Provider.mobile_number == mobile_number]
            if email:
                clauses.append(Provider.email == email)
            return cast(Optional[Provider], self.db.query(Provider).filter(or_(*clauses)).first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking provider contact: {str(e)}")
            raise RepositoryException(f"Failed to look up provider: {str(e)}")
