"""Database models for the STS vend service."""

from .client import Client
from .transaction import Transaction, VEND_CHANNELS

__all__ = ["Client", "Transaction", "VEND_CHANNELS"]
