"""Transaction model: the audit record of one successful vend."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models.client import Client

VEND_CHANNELS = ("upload", "manual")


class Transaction(Base):
    """
    Stores every token successfully issued by STS.

    Rows are written once by the vend recorder and never updated; the most
    recent one per client (by ``created_at``) backs the receipt endpoint.
    """

    __tablename__ = "transactions"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Owner
    client_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Reference to the owning client",
    )

    # Caller-supplied identification (not globally unique)
    transaction_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Transaction id supplied by the caller",
    )

    # Meter details
    submeter_number: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="Meter code the token was issued for"
    )
    tanesco_number: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="Utility account reference on the request"
    )
    token_number: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Token returned by STS"
    )

    # Quantities
    amount: Mapped[float] = mapped_column(
        Numeric(precision=18, scale=2, asdecimal=False),
        nullable=False,
        comment="Monetary amount requested",
    )
    units: Mapped[float] = mapped_column(
        Numeric(precision=18, scale=3, asdecimal=False),
        nullable=False,
        comment="Unit quantity requested",
    )
    vend_type: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="Vend channel: 'upload' or 'manual'"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    client: Mapped["Client"] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint(
            "vend_type IN (" + ", ".join(f"'{c}'" for c in VEND_CHANNELS) + ")",
            name="ck_transactions_vend_type",
        ),
        Index("idx_transaction_client_created", "client_pk", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, transaction_id={self.transaction_id}, "
            f"submeter_number={self.submeter_number}, amount={self.amount}, "
            f"units={self.units}, vend_type={self.vend_type})>"
        )
