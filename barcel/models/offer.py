"""Offer and negotiation entry models."""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from barcel.database import Base, UTCDateTime, utcnow


class OfferStatus(enum.Enum):
    PENDING = "pending"
    COUNTER_OFFERED = "counter-offered"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class Party(enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"


ACTIVE_STATUSES = (OfferStatus.PENDING, OfferStatus.COUNTER_OFFERED)

# Valid targets for a direct status update. Counter-offers are not listed here:
# they move any active offer to COUNTER_OFFERED.
VALID_TRANSITIONS: dict[OfferStatus, set[OfferStatus]] = {
    OfferStatus.PENDING: {OfferStatus.APPROVED, OfferStatus.REJECTED},
    OfferStatus.COUNTER_OFFERED: {OfferStatus.APPROVED, OfferStatus.REJECTED},
    OfferStatus.APPROVED: {OfferStatus.COMPLETED},
    OfferStatus.REJECTED: set(),
    OfferStatus.COMPLETED: set(),
}


class NegotiationEntry(Base):
    """One price proposal. Append-only."""

    __tablename__ = "negotiation_entries"
    __table_args__ = (
        UniqueConstraint("offer_id", "sequence", name="uq_negotiation_entries_offer_sequence"),
    )

    entry_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("offers.offer_id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    party: Mapped[Party] = mapped_column(
        Enum(Party, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )


class Offer(Base):
    __tablename__ = "offers"

    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    # No FK: offers outlive deleted products and keep the name snapshot below.
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(256), nullable=False)
    buyer_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    offer_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[OfferStatus] = mapped_column(
        Enum(OfferStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=OfferStatus.PENDING,
    )
    # Current counter-offer snapshot, mirrors the last negotiation entry
    counter_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    counter_from: Mapped[Party | None] = mapped_column(
        Enum(Party, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )
    counter_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    settlement_tx_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    negotiation_history: Mapped[list[NegotiationEntry]] = relationship(
        NegotiationEntry,
        order_by=NegotiationEntry.sequence,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def current_counter_offer(self) -> dict | None:
        if self.counter_price is None or self.counter_from is None:
            return None
        return {
            "price": self.counter_price,
            "from": self.counter_from.value,
            "timestamp": self.counter_at,
        }
