# barberbook/repositories/__init__.py
"""
Repository layer for Barberbook.

Repositories own query construction; services own transactions.
"""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "IRepository", "RepositoryFactory"]
