"""Seller dashboard and buyer listing endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.auth.middleware import AuthenticatedWallet, verify_request
from barcel.auth.rate_limit import check_rate_limit
from barcel.database import get_db
from barcel.schemas.offer import NewOffersCountResponse, OfferResponse, SoldProductResponse
from barcel.schemas.reputation import LoyaltyTier, SellerReputationResponse
from barcel.schemas.review import SellerReviewResponse
from barcel.services import offer as offer_service
from barcel.services import reputation as reputation_service
from barcel.utils.crypto import normalize_address

router = APIRouter(tags=["sellers"], dependencies=[Depends(check_rate_limit)])


def _path_address(address: str) -> str:
    try:
        return normalize_address(address)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _assert_self(auth: AuthenticatedWallet, address: str) -> None:
    if auth.address != address:
        raise HTTPException(status_code=403, detail="Can only list your own offers")


@router.get("/sellers/{seller_id}/offers", response_model=list[OfferResponse])
async def get_seller_offers(
    seller_id: str,
    active_only: bool = Query(False),
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> list[OfferResponse]:
    """Offers received by the calling seller."""
    seller_id = _path_address(seller_id)
    _assert_self(auth, seller_id)
    offers = await offer_service.get_offers_by_seller(db, seller_id, active_only)
    return [OfferResponse.model_validate(o) for o in offers]


@router.get("/sellers/{seller_id}/offers/new-count", response_model=NewOffersCountResponse)
async def get_new_offers_count(
    seller_id: str,
    since: datetime | None = Query(None),
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> NewOffersCountResponse:
    """Notification badge count for the calling seller."""
    seller_id = _path_address(seller_id)
    _assert_self(auth, seller_id)
    count = await offer_service.get_new_offers_count(db, seller_id, since)
    return NewOffersCountResponse(seller_id=seller_id, since=since, count=count)


@router.get("/buyers/{buyer_address}/offers", response_model=list[OfferResponse])
async def get_buyer_offers(
    buyer_address: str,
    active_only: bool = Query(False),
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> list[OfferResponse]:
    """Offers made by the calling buyer."""
    buyer_address = _path_address(buyer_address)
    _assert_self(auth, buyer_address)
    offers = await offer_service.get_offers_by_buyer(db, buyer_address, active_only)
    return [OfferResponse.model_validate(o) for o in offers]


@router.get("/sellers/{seller_id}/reputation", response_model=SellerReputationResponse)
async def get_seller_reputation(
    seller_id: str,
    db: AsyncSession = Depends(get_db),
) -> SellerReputationResponse:
    """Public trust signals: rating, review count, loyalty points and tier."""
    return await reputation_service.get_seller_reputation(db, _path_address(seller_id))


@router.get("/sellers/{seller_id}/reviews", response_model=list[SellerReviewResponse])
async def get_seller_reviews(
    seller_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[SellerReviewResponse]:
    reviews = await reputation_service.get_all_reviews_by_seller(db, _path_address(seller_id))
    return [SellerReviewResponse(**r) for r in reviews]


@router.get("/sellers/{seller_id}/sales", response_model=list[SoldProductResponse])
async def get_seller_sales(
    seller_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[SoldProductResponse]:
    sales = await offer_service.get_sold_products_by_seller(db, _path_address(seller_id))
    return [SoldProductResponse(**s) for s in sales]


@router.get("/loyalty-tiers/{points}", response_model=LoyaltyTier)
async def get_loyalty_tier(points: int) -> LoyaltyTier:
    return reputation_service.get_seller_loyalty_tier(points)
