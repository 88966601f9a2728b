"""Product catalog business logic."""

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.models.product import Product
from barcel.models.review import Review
from barcel.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def _assert_owner(product: Product, seller_id: str) -> None:
    if product.seller_id != seller_id:
        raise HTTPException(status_code=403, detail="Can only modify own products")


async def add_product(
    db: AsyncSession, seller_id: str, data: ProductCreate
) -> Product:
    """Create a product owned by seller_id."""
    product = Product(
        product_id=uuid.uuid4(),
        seller_id=seller_id,
        name=data.name,
        description=data.description,
        images=list(data.images),
        price_tiers=[str(p) for p in data.price_tiers],
        category=data.category,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info("Seller %s listed product %s", seller_id, product.product_id)
    return product


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product | None:
    """Get product by ID. None if it does not exist."""
    result = await db.execute(select(Product).where(Product.product_id == product_id))
    return result.scalar_one_or_none()


async def list_products(
    db: AsyncSession,
    seller_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Product]:
    """Browse products, newest first, optionally for one seller."""
    query = select(Product)
    if seller_id:
        query = query.where(Product.seller_id == seller_id)
    query = query.order_by(Product.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_products_by_seller(db: AsyncSession, seller_id: str) -> list[Product]:
    result = await db.execute(
        select(Product)
        .where(Product.seller_id == seller_id)
        .order_by(Product.created_at.asc())
    )
    return list(result.scalars().all())


async def update_product(
    db: AsyncSession,
    product_id: uuid.UUID,
    seller_id: str,
    data: ProductUpdate,
) -> Product | None:
    """Update a product. Owner only. None if the product does not exist."""
    product = await get_product(db, product_id)
    if product is None:
        return None
    _assert_owner(product, seller_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != "category":
            continue
        if field == "price_tiers":
            value = [str(p) for p in value]
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    return product


async def delete_product(
    db: AsyncSession, product_id: uuid.UUID, seller_id: str
) -> bool:
    """Delete a product and its reviews. Offers keep their name snapshot."""
    product = await get_product(db, product_id)
    if product is None:
        return False
    _assert_owner(product, seller_id)

    await db.execute(delete(Review).where(Review.product_id == product_id))
    await db.delete(product)
    await db.commit()
    logger.info("Seller %s deleted product %s", seller_id, product_id)
    return True
