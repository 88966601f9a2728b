"""Pydantic v2 schemas for the offer ledger endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from barcel.config import settings
from barcel.utils.crypto import normalize_address


class OfferCreate(BaseModel):
    """Buyer opens a negotiation on a product."""
    product_id: uuid.UUID
    seller_id: str
    offer_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    message: str | None = Field(None, max_length=2048)

    @field_validator("seller_id")
    @classmethod
    def validate_seller(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("offer_price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v > settings.max_price:
            raise ValueError(f"Maximum price is {settings.max_price}")
        return v


class CounterOfferCreate(BaseModel):
    """Either party proposes a new price."""
    model_config = ConfigDict(populate_by_name=True)

    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    party: str = Field(
        ...,
        pattern=r"^(buyer|seller)$",
        validation_alias=AliasChoices("from", "party"),
    )
    message: str | None = Field(None, max_length=2048)
    expected_version: int | None = Field(None, ge=1)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v > settings.max_price:
            raise ValueError(f"Maximum price is {settings.max_price}")
        return v


class OfferStatusUpdate(BaseModel):
    """Approve, reject, or mark an approved offer as settled."""
    status: str = Field(..., pattern=r"^(approved|rejected|completed)$")
    tx_hash: str | None = Field(
        None,
        max_length=128,
        description="Settlement transaction hash, recorded when status is completed.",
    )
    expected_version: int | None = Field(None, ge=1)


class NegotiationEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    price: Decimal
    party: str = Field(validation_alias=AliasChoices("party", "from"), serialization_alias="from")
    message: str | None = None
    created_at: datetime = Field(
        validation_alias=AliasChoices("created_at", "timestamp"),
        serialization_alias="timestamp",
    )

    @field_validator("party", mode="before")
    @classmethod
    def serialize_party(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class CounterOfferSnapshot(BaseModel):
    price: Decimal
    party: str = Field(alias="from")
    timestamp: datetime


class OfferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    buyer_address: str
    seller_id: str
    offer_price: Decimal
    status: str
    negotiation_history: list[NegotiationEntryResponse]
    current_counter_offer: CounterOfferSnapshot | None = None
    settlement_tx_hash: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class NewOffersCountResponse(BaseModel):
    seller_id: str
    since: datetime | None
    count: int


class SoldProductResponse(BaseModel):
    product_id: uuid.UUID
    product_name: str
    sales_count: int
    last_sale_date: datetime


class OfferWatchResponse(BaseModel):
    """Full offer list for the caller plus the cursor to send on the next poll."""
    changed: bool
    cursor: datetime | None
    offers: list[OfferResponse]
