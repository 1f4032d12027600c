# barberbook/repositories/service_catalog_repository.py
"""Data access for provider service offerings."""

import logging
from typing import List, Optional, Sequence, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.service_offering import ServiceOffering
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ServiceCatalogRepository(BaseRepository[ServiceOffering]):
    """Repository for service offering lookups and edits."""

    def __init__(self, db: Session):
        super().__init__(db, ServiceOffering)

    def get_active_by_ids(
        self, service_ids: Sequence[str], provider_id: Optional[str] = None
    ) -> List[ServiceOffering]:
        """
        Fetch active offerings among ``service_ids``.

        Rows come back in database order; callers reorder as needed.
        """
        if not service_ids:
            return []
        try:
            query = self.db.query(ServiceOffering).filter(
                ServiceOffering.id.in_(list(service_ids)),
                ServiceOffering.is_active.is_(True),
            )
            if provider_id is not None:
                query = query.filter(ServiceOffering.provider_id == provider_id)
            return cast(List[ServiceOffering], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving service offerings: {str(e)}")
            raise RepositoryException(f"Failed to resolve services: {str(e)}")

    def list_for_provider(
        self, provider_id: str, include_inactive: bool = False
    ) -> List[ServiceOffering]:
        query = self.db.query(ServiceOffering).filter(ServiceOffering.provider_id == provider_id)
        if not include_inactive:
            query = query.filter(ServiceOffering.is_active.is_(True))
        return self._execute_query(query.order_by(ServiceOffering.name))
