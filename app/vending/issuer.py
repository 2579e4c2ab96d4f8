"""
STS token issuer gateway.

Requests a vending token from STS, walking the configured account pool in
order until one account returns a token. Accounts can run out of balance
independently, so a failure on one account is logged and the next is tried;
only exhausting the whole pool is reported to the caller.
"""

from typing import Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from app.core.logging import mask_token
from app.vending.config import StsConfig
from app.vending.errors import IssuerExhausted
from app.vending.models import StsTokenResponse, VendKind

logger = structlog.get_logger()


class TokenRequestError(Exception):
    """A single account's attempt did not produce a token."""


def format_quantity(quantity: float) -> str:
    """Render a quantity the way STS expects it (``100``, not ``100.0``)."""
    value = float(quantity)
    if value.is_integer():
        return str(int(value))
    return str(value)


class TokenIssuerGateway:
    """Client for STS ``GetVendingToken`` with sequential account failover."""

    def __init__(
        self,
        config: StsConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway.

        Args:
            config: Validated STS configuration
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self._transport = transport

    def _build_params(
        self, user_id: str, meter_code: str, quantity: float, vend_kind: VendKind
    ) -> Dict[str, str]:
        return {
            "UserId": user_id,
            "Password": self.config.password,
            "MeterType": self.config.meter_type,
            "MeterCode": meter_code,
            "AmountOrQuantity": format_quantity(quantity),
            "VendingType": str(int(vend_kind)),
        }

    async def issue_token(
        self, meter_code: str, quantity: float, vend_kind: VendKind
    ) -> str:
        """
        Obtain a token for ``meter_code``.

        Args:
            meter_code: Meter (submeter) number to credit
            quantity: Amount or unit quantity, depending on ``vend_kind``
            vend_kind: STS vending type

        Returns:
            The token issued by the first account that succeeded

        Raises:
            IssuerExhausted: If every account failed; carries the last error
        """
        last_error: Optional[TokenRequestError] = None
        attempts = 0

        async with httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=self._transport,
        ) as client:
            for user_id in self.config.user_ids:
                attempts += 1
                try:
                    token = await self._request_token(
                        client, user_id, meter_code, quantity, vend_kind
                    )
                except TokenRequestError as e:
                    last_error = e
                    logger.warning(
                        "sts.attempt_failed",
                        user_id=user_id,
                        attempt=attempts,
                        pool_size=len(self.config.user_ids),
                        error=str(e),
                    )
                    continue

                logger.info(
                    "sts.token_issued",
                    user_id=user_id,
                    attempt=attempts,
                    meter_code=meter_code,
                    vend_kind=vend_kind.name.lower(),
                    token=mask_token(token),
                )
                return token

        message = (
            str(last_error)
            if last_error
            else "All STS User IDs failed to process the vend request."
        )
        logger.error(
            "sts.pool_exhausted",
            attempts=attempts,
            meter_code=meter_code,
            error=message,
        )
        raise IssuerExhausted(message, attempts=attempts)

    async def _request_token(
        self,
        client: httpx.AsyncClient,
        user_id: str,
        meter_code: str,
        quantity: float,
        vend_kind: VendKind,
    ) -> str:
        """Make one GetVendingToken call; raise TokenRequestError unless a token comes back."""
        params = self._build_params(user_id, meter_code, quantity, vend_kind)

        try:
            response = await client.get(self.config.token_path, params=params)
        except httpx.TimeoutException as e:
            raise TokenRequestError(f"STS request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TokenRequestError(f"STS request failed: {e}") from e

        body = self._parse_body(response)

        if response.is_error:
            message = (body.message if body else None) or (
                f"STS responded with HTTP {response.status_code}"
            )
            raise TokenRequestError(message)

        if body is None:
            raise TokenRequestError(
                "Vending failed: Invalid response from STS server."
            )

        token = body.token
        if not token:
            raise TokenRequestError(
                body.message or "Vending failed: Invalid response from STS server."
            )
        return token

    @staticmethod
    def _parse_body(response: httpx.Response) -> Optional[StsTokenResponse]:
        try:
            return StsTokenResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            return None
