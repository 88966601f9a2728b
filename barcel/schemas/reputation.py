"""Pydantic v2 schemas for seller trust signals."""

from pydantic import BaseModel


class SellerRating(BaseModel):
    rating: float
    total_reviews: int


class LoyaltyTier(BaseModel):
    tier: str
    color: str
    icon: str


class SellerReputationResponse(BaseModel):
    seller_id: str
    rating: float
    total_reviews: int
    loyalty_points: int
    loyalty_tier: LoyaltyTier
