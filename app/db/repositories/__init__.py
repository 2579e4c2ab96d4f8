"""Repository exports."""

from .client_repository import ClientRepository
from .transaction_repository import TransactionRepository

__all__ = [
    "ClientRepository",
    "TransactionRepository",
]
