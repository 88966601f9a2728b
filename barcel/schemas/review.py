"""Pydantic v2 schemas for Reviews."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    author: str = Field(..., min_length=1, max_length=128)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=4096)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: uuid.UUID
    product_id: uuid.UUID
    author: str
    rating: int
    comment: str
    created_at: datetime


class SellerReviewResponse(ReviewResponse):
    """A review annotated with the product it was left on."""
    product_name: str
