# barberbook/repositories/payment_repository.py
"""Payment row lookups."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.payment import Payment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        return self.find_one_by(transaction_id=transaction_id)
