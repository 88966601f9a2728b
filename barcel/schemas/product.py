"""Pydantic v2 schemas for the product catalog."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from barcel.config import settings


def _check_images(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    for url in v:
        if not url.startswith(("http://", "https://")):
            raise ValueError("Please enter a valid image URL")
        if len(url) > 2048:
            raise ValueError("Image URL must be <= 2048 chars")
    return v


def _check_price_tiers(v: list[Decimal] | None) -> list[Decimal] | None:
    if v is None:
        return v
    for price in v:
        if price <= 0:
            raise ValueError("Price must be a positive number")
        if price > settings.max_price:
            raise ValueError(f"Maximum price is {settings.max_price}")
    return v


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=256)
    description: str = Field(..., min_length=10, max_length=4096)
    images: list[str] = Field(..., min_length=1, max_length=20)
    price_tiers: list[Decimal] = Field(..., min_length=1, max_length=10)
    category: str | None = Field(None, max_length=64)

    @field_validator("images")
    @classmethod
    def validate_images(cls, v: list[str]) -> list[str]:
        return _check_images(v)

    @field_validator("price_tiers")
    @classmethod
    def validate_price_tiers(cls, v: list[Decimal]) -> list[Decimal]:
        return _check_price_tiers(v)


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=3, max_length=256)
    description: str | None = Field(None, min_length=10, max_length=4096)
    images: list[str] | None = Field(None, min_length=1, max_length=20)
    price_tiers: list[Decimal] | None = Field(None, min_length=1, max_length=10)
    category: str | None = Field(None, max_length=64)

    @field_validator("images")
    @classmethod
    def validate_images(cls, v: list[str] | None) -> list[str] | None:
        return _check_images(v)

    @field_validator("price_tiers")
    @classmethod
    def validate_price_tiers(cls, v: list[Decimal] | None) -> list[Decimal] | None:
        return _check_price_tiers(v)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    seller_id: str
    name: str
    description: str
    images: list[str]
    price_tiers: list[Decimal]
    category: str | None
    created_at: datetime
    updated_at: datetime


class SalesCountResponse(BaseModel):
    product_id: uuid.UUID
    sales_count: int
