"""Offer ledger: negotiation state machine and sales queries.

Lookups of missing products or offers return None instead of raising, so
callers branch on absence explicitly. Authorization, conflicts and business
rule violations raise HTTPException like the rest of the service layer.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

import redis.asyncio as aioredis
from fastapi import HTTPException
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from barcel.config import settings
from barcel.database import utcnow
from barcel.models.offer import (
    ACTIVE_STATUSES,
    VALID_TRANSITIONS,
    NegotiationEntry,
    Offer,
    OfferStatus,
    Party,
)
from barcel.models.product import Product
from barcel.services.offer_events import publish_offer_event

logger = logging.getLogger(__name__)

_STATUS_UPDATE_TARGETS = (OfferStatus.APPROVED, OfferStatus.REJECTED, OfferStatus.COMPLETED)


def _assert_transition(current: OfferStatus, target: OfferStatus) -> None:
    """Raise 409 if the state transition is not valid."""
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot transition from {current.value} to {target.value}",
        )


def _assert_party(offer: Offer, actor: str, allowed: str = "both") -> None:
    """Ensure actor is a party to the offer. allowed: 'buyer', 'seller', 'both'."""
    is_buyer = offer.buyer_address == actor
    is_seller = offer.seller_id == actor
    if allowed == "buyer" and not is_buyer:
        raise HTTPException(status_code=403, detail="Only the buyer can perform this action")
    if allowed == "seller" and not is_seller:
        raise HTTPException(status_code=403, detail="Only the seller can perform this action")
    if allowed == "both" and not (is_buyer or is_seller):
        raise HTTPException(status_code=403, detail="Not a party to this offer")


def _assert_version(offer: Offer, expected_version: int | None) -> None:
    if expected_version is not None and offer.version != expected_version:
        raise HTTPException(
            status_code=409,
            detail=f"Offer is at version {offer.version}, expected {expected_version}. Reload and retry.",
        )


async def _load_offer(db: AsyncSession, offer_id: uuid.UUID) -> Offer | None:
    result = await db.execute(
        select(Offer)
        .where(Offer.offer_id == offer_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _commit_offer(db: AsyncSession, offer_id: uuid.UUID) -> None:
    """Commit one offer's changes; a concurrent writer turns into a 409."""
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent update rejected for offer %s", offer_id)
        raise HTTPException(
            status_code=409,
            detail="Offer was modified concurrently. Reload and retry.",
        )


async def create_offer(
    db: AsyncSession,
    product_id: uuid.UUID,
    seller_id: str,
    buyer_address: str,
    offer_price: Decimal,
    message: str | None = None,
    redis: aioredis.Redis | None = None,
) -> Offer | None:
    """Buyer opens a negotiation. None if the product does not exist."""
    result = await db.execute(select(Product).where(Product.product_id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        return None

    if product.seller_id != seller_id:
        raise HTTPException(status_code=422, detail="seller_id does not own this product")
    if buyer_address == seller_id:
        raise HTTPException(status_code=422, detail="Cannot make an offer on your own product")

    now = utcnow()
    offer_id = uuid.uuid4()
    offer = Offer(
        offer_id=offer_id,
        product_id=product_id,
        product_name=product.name,
        buyer_address=buyer_address,
        seller_id=seller_id,
        offer_price=offer_price,
        status=OfferStatus.PENDING,
        created_at=now,
        updated_at=now,
        negotiation_history=[
            NegotiationEntry(
                entry_id=uuid.uuid4(),
                offer_id=offer_id,
                sequence=0,
                price=offer_price,
                party=Party.BUYER,
                message=message,
                created_at=now,
            )
        ],
    )
    db.add(offer)
    await db.commit()

    offer = await _load_offer(db, offer_id)
    logger.info("Buyer %s offered %s on product %s", buyer_address, offer_price, product_id)
    if redis is not None:
        await publish_offer_event(redis, offer, "created")
    return offer


async def create_counter_offer(
    db: AsyncSession,
    offer_id: uuid.UUID,
    price: Decimal,
    party: str | Party,
    actor: str,
    message: str | None = None,
    expected_version: int | None = None,
    redis: aioredis.Redis | None = None,
) -> Offer | None:
    """Append a counter-offer from either side.

    None if the offer does not exist or negotiation on it is closed
    (approved, rejected, completed).
    """
    offer = await _load_offer(db, offer_id)
    if offer is None:
        return None

    party = Party(party)
    _assert_party(offer, actor, allowed=party.value)

    if offer.status not in ACTIVE_STATUSES:
        logger.info("Ignoring counter-offer on %s offer %s", offer.status.value, offer_id)
        return None

    _assert_version(offer, expected_version)

    history = offer.negotiation_history
    if settings.enforce_counter_alternation and history[-1].party == party:
        raise HTTPException(
            status_code=409,
            detail=f"Waiting for the other party to respond to the {party.value}'s last offer",
        )

    now = utcnow()
    history.append(
        NegotiationEntry(
            entry_id=uuid.uuid4(),
            offer_id=offer.offer_id,
            sequence=len(history),
            price=price,
            party=party,
            message=message,
            created_at=now,
        )
    )
    offer.counter_price = price
    offer.counter_from = party
    offer.counter_at = now
    offer.offer_price = price
    offer.status = OfferStatus.COUNTER_OFFERED

    await _commit_offer(db, offer_id)

    offer = await _load_offer(db, offer_id)
    logger.info("%s countered offer %s with %s", party.value, offer_id, price)
    if redis is not None:
        await publish_offer_event(redis, offer, "countered")
    return offer


async def update_offer_status(
    db: AsyncSession,
    offer_id: uuid.UUID,
    status: str | OfferStatus,
    actor: str,
    tx_hash: str | None = None,
    expected_version: int | None = None,
    redis: aioredis.Redis | None = None,
) -> Offer | None:
    """Set status to approved, rejected, or completed. Never touches history.

    Approval and completion are the seller's; either party may reject.
    Repeating the current status is a no-op.
    """
    target = OfferStatus(status)
    if target not in _STATUS_UPDATE_TARGETS:
        raise HTTPException(status_code=422, detail=f"Cannot set status to {target.value} directly")

    offer = await _load_offer(db, offer_id)
    if offer is None:
        return None

    _assert_party(offer, actor, allowed="both" if target == OfferStatus.REJECTED else "seller")

    if offer.status == target:
        return offer

    _assert_version(offer, expected_version)
    _assert_transition(offer.status, target)

    offer.status = target
    if target == OfferStatus.COMPLETED:
        offer.completed_at = utcnow()
        offer.settlement_tx_hash = tx_hash

    await _commit_offer(db, offer_id)

    offer = await _load_offer(db, offer_id)
    logger.info("Offer %s is now %s", offer_id, target.value)
    if redis is not None:
        await publish_offer_event(redis, offer, target.value)
    return offer


async def get_offer(db: AsyncSession, offer_id: uuid.UUID) -> Offer | None:
    """Get offer by ID."""
    return await _load_offer(db, offer_id)


async def get_offers_by_product(db: AsyncSession, product_id: uuid.UUID) -> list[Offer]:
    result = await db.execute(
        select(Offer)
        .where(Offer.product_id == product_id)
        .order_by(Offer.created_at.asc())
    )
    return list(result.scalars().all())


async def get_latest_offer_for_product(
    db: AsyncSession, product_id: uuid.UUID, buyer_address: str
) -> Offer | None:
    """Most recently created offer for this buyer and product."""
    result = await db.execute(
        select(Offer)
        .where(Offer.product_id == product_id, Offer.buyer_address == buyer_address)
        .order_by(Offer.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _offers_for(
    db: AsyncSession, column, value: str, active_only: bool  # type: ignore[no-untyped-def]
) -> list[Offer]:
    query = select(Offer).where(column == value)
    if active_only:
        query = query.where(Offer.status.in_(ACTIVE_STATUSES))
    query = query.order_by(Offer.created_at.asc()).execution_options(populate_existing=True)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_offers_by_seller(
    db: AsyncSession, seller_id: str, active_only: bool = False
) -> list[Offer]:
    """Offers received by a seller, in creation order."""
    return await _offers_for(db, Offer.seller_id, seller_id, active_only)


async def get_offers_by_buyer(
    db: AsyncSession, buyer_address: str, active_only: bool = False
) -> list[Offer]:
    """Offers made by a buyer, in creation order."""
    return await _offers_for(db, Offer.buyer_address, buyer_address, active_only)


async def get_new_offers_count(
    db: AsyncSession, seller_id: str, since: datetime | None = None
) -> int:
    """Active offers that are new since the seller last looked.

    An offer counts when it was created after `since`, or when the buyer
    countered it after `since` even though the offer itself is older.
    """
    query = select(func.count()).select_from(Offer).where(
        Offer.seller_id == seller_id,
        Offer.status.in_(ACTIVE_STATUSES),
    )
    if since is not None:
        query = query.where(
            or_(
                Offer.created_at > since,
                and_(Offer.counter_from == Party.BUYER, Offer.counter_at > since),
            )
        )
    result = await db.execute(query)
    return result.scalar() or 0


async def get_product_sales_count(db: AsyncSession, product_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(Offer).where(
            Offer.product_id == product_id,
            Offer.status == OfferStatus.COMPLETED,
        )
    )
    return result.scalar() or 0


async def get_sold_products_by_seller(db: AsyncSession, seller_id: str) -> list[dict]:
    """Completed sales grouped by product with count and latest sale date."""
    result = await db.execute(
        select(Offer)
        .where(Offer.seller_id == seller_id, Offer.status == OfferStatus.COMPLETED)
        .order_by(Offer.created_at.asc())
    )

    sales: dict[uuid.UUID, dict] = {}
    for offer in result.scalars().all():
        sold_at = offer.completed_at or offer.created_at
        entry = sales.get(offer.product_id)
        if entry is None:
            sales[offer.product_id] = {
                "product_id": offer.product_id,
                "product_name": offer.product_name,
                "sales_count": 1,
                "last_sale_date": sold_at,
            }
            continue
        entry["sales_count"] += 1
        if sold_at > entry["last_sale_date"]:
            entry["last_sale_date"] = sold_at
    return list(sales.values())
