"""Review feed: append-only reviews per product."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.models.product import Product
from barcel.models.review import Review
from barcel.schemas.review import ReviewCreate


async def add_review(
    db: AsyncSession, product_id: uuid.UUID, data: ReviewCreate
) -> Review | None:
    """Append a review to a product. None if the product does not exist."""
    result = await db.execute(select(Product.product_id).where(Product.product_id == product_id))
    if result.scalar_one_or_none() is None:
        return None

    review = Review(
        review_id=uuid.uuid4(),
        product_id=product_id,
        author=data.author,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return review


async def get_reviews_for_product(
    db: AsyncSession, product_id: uuid.UUID, limit: int = 50, offset: int = 0
) -> list[Review]:
    """Reviews on a product, newest first."""
    result = await db.execute(
        select(Review)
        .where(Review.product_id == product_id)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
