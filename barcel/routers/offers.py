"""Offer negotiation endpoints."""

import uuid
from datetime import datetime

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.auth.middleware import AuthenticatedWallet, verify_request
from barcel.auth.rate_limit import check_rate_limit
from barcel.config import settings
from barcel.database import get_db
from barcel.redis import get_redis
from barcel.schemas.offer import (
    CounterOfferCreate,
    OfferCreate,
    OfferResponse,
    OfferStatusUpdate,
    OfferWatchResponse,
)
from barcel.services import offer as offer_service
from barcel.services import offer_events

router = APIRouter(prefix="/offers", tags=["offers"])


@router.post("", response_model=OfferResponse, status_code=201, dependencies=[Depends(check_rate_limit)])
async def create_offer(
    data: OfferCreate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OfferResponse:
    """Buyer opens a negotiation on a product."""
    offer = await offer_service.create_offer(
        db,
        data.product_id,
        data.seller_id,
        auth.address,
        data.offer_price,
        message=data.message,
        redis=redis,
    )
    if offer is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return OfferResponse.model_validate(offer)


@router.get("/watch", response_model=OfferWatchResponse, dependencies=[Depends(check_rate_limit)])
async def watch_offers(
    role: str = Query(..., pattern=f"^({'|'.join(offer_events.ROLES)})$"),
    since: datetime | None = Query(None),
    timeout: float | None = Query(None, gt=0, le=60),
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OfferWatchResponse:
    """Long-poll for changes to the caller's offers.

    Returns as soon as anything changed after `since`, otherwise after the
    timeout. The response always carries the full offer list; send back its
    cursor as `since` on the next call.
    """
    changed, cursor = await offer_events.wait_for_offer_changes(
        db,
        redis,
        role,
        auth.address,
        since,
        timeout or settings.offer_watch_timeout_seconds,
    )
    if role == "seller":
        offers = await offer_service.get_offers_by_seller(db, auth.address)
    else:
        offers = await offer_service.get_offers_by_buyer(db, auth.address)
    return OfferWatchResponse(
        changed=changed,
        cursor=cursor,
        offers=[OfferResponse.model_validate(o) for o in offers],
    )


@router.get("/{offer_id}", response_model=OfferResponse, dependencies=[Depends(check_rate_limit)])
async def get_offer(
    offer_id: uuid.UUID,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> OfferResponse:
    """Get offer details. Only the buyer and seller can view it."""
    offer = await offer_service.get_offer(db, offer_id)
    if offer is None:
        raise HTTPException(status_code=404, detail="Offer not found")
    if auth.address not in (offer.buyer_address, offer.seller_id):
        raise HTTPException(status_code=403, detail="Not a party to this offer")
    return OfferResponse.model_validate(offer)


@router.post("/{offer_id}/counter", response_model=OfferResponse, dependencies=[Depends(check_rate_limit)])
async def counter_offer(
    offer_id: uuid.UUID,
    data: CounterOfferCreate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OfferResponse:
    """Either party proposes a new price."""
    if await offer_service.get_offer(db, offer_id) is None:
        raise HTTPException(status_code=404, detail="Offer not found")
    offer = await offer_service.create_counter_offer(
        db,
        offer_id,
        data.price,
        data.party,
        auth.address,
        message=data.message,
        expected_version=data.expected_version,
        redis=redis,
    )
    if offer is None:
        raise HTTPException(status_code=409, detail="Offer is no longer open for negotiation")
    return OfferResponse.model_validate(offer)


@router.post("/{offer_id}/status", response_model=OfferResponse, dependencies=[Depends(check_rate_limit)])
async def update_offer_status(
    offer_id: uuid.UUID,
    data: OfferStatusUpdate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OfferResponse:
    """Approve, reject, or complete an offer."""
    offer = await offer_service.update_offer_status(
        db,
        offer_id,
        data.status,
        auth.address,
        tx_hash=data.tx_hash,
        expected_version=data.expected_version,
        redis=redis,
    )
    if offer is None:
        raise HTTPException(status_code=404, detail="Offer not found")
    return OfferResponse.model_validate(offer)
