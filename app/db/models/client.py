"""Client model: one row per caller-supplied client identifier."""

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, List, Optional
from sqlalchemy import String, Date, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models.transaction import Transaction


class Client(Base):
    """
    A vending client, identified by an opaque id generated on the client side.

    Rows are created lazily the first time an id is seen and are never
    deleted. ``last_vend_date`` only moves forward after a successful vend.
    """

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    client_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Opaque identifier supplied by the caller",
    )
    tanesco_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Utility account reference; set once and never overwritten",
    )
    last_vend_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        comment="UTC calendar date of the last successful vend",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    transactions: Mapped[List["Transaction"]] = relationship(
        back_populates="client", lazy="raise"
    )

    def __repr__(self) -> str:
        return (
            f"<Client(id={self.id}, client_id={self.client_id}, "
            f"tanesco_number={self.tanesco_number}, last_vend_date={self.last_vend_date})>"
        )
