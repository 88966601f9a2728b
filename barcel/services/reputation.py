"""Seller reputation derived from product reviews.

Everything here is recomputed from the current catalog and reviews on each
call; there is no stored score to invalidate.
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.models.product import Product
from barcel.models.review import Review
from barcel.schemas.reputation import LoyaltyTier, SellerRating, SellerReputationResponse

REVIEW_VOLUME_CAP = 50
PERFECT_RATING_BONUS = 20
HIGH_RATING_BONUS = 10

# (minimum points, tier, color, icon), checked top down
_TIER_LADDER: list[tuple[int, str, str, str]] = [
    (100, "Platinum", "text-purple-400", "💎"),
    (75, "Gold", "text-yellow-400", "⭐"),
    (50, "Silver", "text-gray-300", "🥈"),
    (25, "Bronze", "text-orange-400", "🥉"),
]


def compute_rating(ratings: list[int]) -> SellerRating:
    """Mean rating rounded half-up to one decimal."""
    if not ratings:
        return SellerRating(rating=0, total_reviews=0)
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    rounded = mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return SellerRating(rating=float(rounded), total_reviews=len(ratings))


def compute_loyalty_points(rating: float, total_reviews: int) -> int:
    """Points = rating*10 + min(reviews, 50) + bonus for 5.0 (20) or 4.5+ (10)."""
    if total_reviews == 0:
        return 0
    score = Decimal(str(rating))
    points = score * 10 + min(total_reviews, REVIEW_VOLUME_CAP)
    if score >= Decimal("5.0"):
        points += PERFECT_RATING_BONUS
    elif score >= Decimal("4.5"):
        points += HIGH_RATING_BONUS
    return int(points.to_integral_value(rounding=ROUND_HALF_UP))


def get_seller_loyalty_tier(points: int) -> LoyaltyTier:
    """Map loyalty points to a named tier with display hints."""
    for threshold, tier, color, icon in _TIER_LADDER:
        if points >= threshold:
            return LoyaltyTier(tier=tier, color=color, icon=icon)
    if points > 0:
        return LoyaltyTier(tier="New", color="text-blue-400", icon="🌱")
    return LoyaltyTier(tier="Unrated", color="text-muted-foreground", icon="📊")


async def _seller_ratings(db: AsyncSession, seller_id: str) -> list[int]:
    result = await db.execute(
        select(Review.rating)
        .join(Product, Review.product_id == Product.product_id)
        .where(Product.seller_id == seller_id)
    )
    return list(result.scalars().all())


async def get_seller_overall_rating(db: AsyncSession, seller_id: str) -> SellerRating:
    return compute_rating(await _seller_ratings(db, seller_id))


async def get_seller_loyalty_points(db: AsyncSession, seller_id: str) -> int:
    rating = await get_seller_overall_rating(db, seller_id)
    return compute_loyalty_points(rating.rating, rating.total_reviews)


async def get_seller_reputation(
    db: AsyncSession, seller_id: str
) -> SellerReputationResponse:
    """Rating, points and tier in one read."""
    rating = await get_seller_overall_rating(db, seller_id)
    points = compute_loyalty_points(rating.rating, rating.total_reviews)
    return SellerReputationResponse(
        seller_id=seller_id,
        rating=rating.rating,
        total_reviews=rating.total_reviews,
        loyalty_points=points,
        loyalty_tier=get_seller_loyalty_tier(points),
    )


async def get_all_reviews_by_seller(
    db: AsyncSession, seller_id: str
) -> list[dict]:
    """Every review on the seller's products, newest first, with product context."""
    result = await db.execute(
        select(Review, Product.name)
        .join(Product, Review.product_id == Product.product_id)
        .where(Product.seller_id == seller_id)
        .order_by(Review.created_at.desc())
    )
    return [
        {
            "review_id": review.review_id,
            "product_id": review.product_id,
            "product_name": product_name,
            "author": review.author,
            "rating": review.rating,
            "comment": review.comment,
            "created_at": review.created_at,
        }
        for review, product_name in result.all()
    ]
