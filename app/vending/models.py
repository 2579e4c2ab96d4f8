"""Request, response and STS wire models for the vend flow."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum, IntEnum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_ACCOUNT_REFERENCE = "N/A"


class VendKind(IntEnum):
    """STS ``VendingType``: what ``AmountOrQuantity`` is measured in."""

    AMOUNT = 0
    UNIT = 1


class VendChannel(str, Enum):
    """How the vend request reached the service."""

    UPLOAD = "upload"
    MANUAL = "manual"


@dataclass(frozen=True)
class VendQuantity:
    """Resolved vend: the STS vending type and the quantity to send."""

    kind: VendKind
    quantity: float


class VendData(BaseModel):
    """Receipt data sent by the caller; unknown keys are echoed back."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    amount: float = Field(allow_inf_nan=False)
    units: float = Field(allow_inf_nan=False)
    transaction_id: str = Field(alias="transactionId", min_length=1)
    tanesco_number: str = Field(alias="tanescoNumber", min_length=1)


class VendRequest(BaseModel):
    """Body of ``POST /api/vend``."""

    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(alias="clientId", min_length=1)
    submeter_number: str = Field(alias="submeterNumber", min_length=1)
    vend_data: VendData = Field(alias="vendData")
    vend_type: VendChannel = Field(alias="vendType")


class ClientStatus(BaseModel):
    """Response of the status query."""

    model_config = ConfigDict(populate_by_name=True)

    tanesco_number: Optional[str] = Field(default=None, alias="tanescoNumber")
    last_vend_date: Optional[date] = Field(default=None, alias="lastVendDate")


class Receipt(BaseModel):
    """Latest transaction, in the receipt shape the client renders."""

    model_config = ConfigDict(populate_by_name=True)

    tanesco_number: str = Field(alias="tanescoNumber")
    token_number: str = Field(alias="tokenNumber")
    transaction_id: str = Field(alias="transactionId")
    amount: float
    units: float
    vend_date: date = Field(alias="date")


class StsTokenData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: Optional[str] = Field(default=None, alias="Token")


class StsTokenResponse(BaseModel):
    """Body returned by ``GetVendingToken``; ``Code == 0`` means success."""

    model_config = ConfigDict(extra="ignore")

    code: Optional[int] = Field(default=None, alias="Code")
    message: Optional[str] = Field(default=None, alias="Message")
    data: Optional[StsTokenData] = Field(default=None, alias="Data")

    @property
    def token(self) -> Optional[str]:
        if self.code != 0 or self.data is None:
            return None
        return self.data.token or None
