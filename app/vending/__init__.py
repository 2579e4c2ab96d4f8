"""
Token vending module.

Resolves clients, enforces the once-per-day vend limit, obtains meter
tokens from STS with account failover and records every successful vend.
"""

from app.vending.config import StsConfig
from app.vending.errors import (
    DailyLimitExceeded,
    InvalidAmount,
    InvalidInput,
    IssuerExhausted,
    NotFound,
    StorageUnavailable,
    VendError,
)
from app.vending.issuer import TokenIssuerGateway
from app.vending.orchestrator import VendOrchestrator
from app.vending.policy import VendPolicy
from app.vending.recorder import VendRecorder
from app.vending.registry import ClientRegistry

__all__ = [
    "ClientRegistry",
    "DailyLimitExceeded",
    "InvalidAmount",
    "InvalidInput",
    "IssuerExhausted",
    "NotFound",
    "StorageUnavailable",
    "StsConfig",
    "TokenIssuerGateway",
    "VendError",
    "VendOrchestrator",
    "VendPolicy",
    "VendRecorder",
]
