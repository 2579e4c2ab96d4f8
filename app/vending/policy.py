"""
Vend policy: the once-per-day rule and vend-kind resolution.

Pure decisions over a client snapshot; nothing here touches storage.
"""

import math
from datetime import date, datetime, timezone
from typing import Callable, Optional

from app.db.models.client import Client
from app.vending.errors import DailyLimitExceeded, InvalidAmount
from app.vending.models import VendKind, VendQuantity


def utc_today() -> date:
    """Current calendar date on the UTC boundary."""
    return datetime.now(timezone.utc).date()


class VendPolicy:
    """Decides whether a client may vend today and what to ask STS for."""

    def __init__(self, today: Optional[Callable[[], date]] = None):
        """
        Args:
            today: Clock returning the current date (defaults to UTC today)
        """
        self.today = today or utc_today

    def check_daily_limit(self, client: Client) -> None:
        """
        Raises:
            DailyLimitExceeded: If the client already vended today
        """
        if client.last_vend_date is not None and client.last_vend_date == self.today():
            raise DailyLimitExceeded()

    @staticmethod
    def resolve_quantity(amount: float, units: float) -> VendQuantity:
        """
        Pick the STS vending type for a request.

        Units are used only when they are positive and no amount was given;
        in every other case the amount wins.

        Raises:
            InvalidAmount: If the resolved quantity is not a positive finite number
        """
        if units > 0 and amount == 0:
            resolved = VendQuantity(kind=VendKind.UNIT, quantity=units)
        else:
            resolved = VendQuantity(kind=VendKind.AMOUNT, quantity=amount)

        if not math.isfinite(resolved.quantity) or resolved.quantity <= 0:
            raise InvalidAmount()
        return resolved

    def check_and_resolve(
        self, client: Client, amount: float, units: float
    ) -> VendQuantity:
        """Apply the daily limit, then resolve the vend kind and quantity."""
        self.check_daily_limit(client)
        return self.resolve_quantity(amount, units)
