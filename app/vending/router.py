"""
Vend API routes.

POST /api/vend                      process a vend request
GET  /api/vend/status/{client_id}   client status (creates the client if new)
GET  /api/vend/latest/{client_id}   latest transaction as a receipt
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
import logging

from app.core.config import get_settings
from app.vending.config import StsConfig
from app.vending.issuer import TokenIssuerGateway
from app.vending.orchestrator import VendOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vend", tags=["vend"])


class VendResponse(BaseModel):
    """Response for a successful vend."""

    message: str
    data: Dict[str, Any]


class LatestTransactionResponse(BaseModel):
    """Response for the latest-transaction query."""

    data: Optional[Dict[str, Any]]


@lru_cache(maxsize=1)
def get_token_issuer() -> TokenIssuerGateway:
    """Build the process-wide STS gateway from settings (validated once)."""
    return TokenIssuerGateway(StsConfig.from_settings(get_settings()))


def get_vend_orchestrator(
    issuer: TokenIssuerGateway = Depends(get_token_issuer),
) -> VendOrchestrator:
    return VendOrchestrator(issuer=issuer)


@router.post("", response_model=VendResponse)
async def process_vend(
    payload: Any = Body(None),
    orchestrator: VendOrchestrator = Depends(get_vend_orchestrator),
):
    """
    Process a new vend request (either from upload or manual entry).

    Errors are raised as VendError subclasses and rendered by the
    application's exception handlers.
    """
    data = await orchestrator.vend(payload)
    return VendResponse(message="Vend successful!", data=data)


@router.get("/status/{client_id}")
async def get_user_status(
    client_id: str,
    orchestrator: VendOrchestrator = Depends(get_vend_orchestrator),
):
    """Get the status of a client (tanesco number, last vend date)."""
    return await orchestrator.get_status(client_id)


@router.get("/latest/{client_id}", response_model=LatestTransactionResponse)
async def get_latest_transaction(
    client_id: str,
    orchestrator: VendOrchestrator = Depends(get_vend_orchestrator),
):
    """Get the latest successful transaction for a client."""
    receipt = await orchestrator.get_latest_transaction(client_id)
    if receipt is None:
        logger.debug(f"No transactions yet for client {client_id}")
    return LatestTransactionResponse(data=receipt)
