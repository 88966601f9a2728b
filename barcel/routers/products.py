"""Product catalog and review endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.auth.middleware import AuthenticatedWallet, verify_request
from barcel.auth.rate_limit import check_rate_limit
from barcel.database import get_db
from barcel.schemas.offer import OfferResponse
from barcel.schemas.product import ProductCreate, ProductResponse, ProductUpdate, SalesCountResponse
from barcel.schemas.review import ReviewCreate, ReviewResponse
from barcel.services import catalog as catalog_service
from barcel.services import offer as offer_service
from barcel.services import review as review_service
from barcel.utils.crypto import normalize_address

router = APIRouter(prefix="/products", tags=["products"])


@router.post(
    "",
    response_model=ProductResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def add_product(
    data: ProductCreate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    """List a new product. The caller becomes its seller."""
    product = await catalog_service.add_product(db, auth.address, data)
    return ProductResponse.model_validate(product)


@router.get("", response_model=list[ProductResponse], dependencies=[Depends(check_rate_limit)])
async def list_products(
    seller_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[ProductResponse]:
    """Browse products, newest first."""
    if seller_id is not None:
        try:
            seller_id = normalize_address(seller_id)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
    products = await catalog_service.list_products(db, seller_id, limit, offset)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse, dependencies=[Depends(check_rate_limit)])
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await catalog_service.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponse.model_validate(product)


@router.patch("/{product_id}", response_model=ProductResponse, dependencies=[Depends(check_rate_limit)])
async def update_product(
    product_id: uuid.UUID,
    data: ProductUpdate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    """Update a product. Seller only."""
    product = await catalog_service.update_product(db, product_id, auth.address, data)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", status_code=204, dependencies=[Depends(check_rate_limit)])
async def delete_product(
    product_id: uuid.UUID,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a product and its reviews. Seller only."""
    deleted = await catalog_service.delete_product(db, product_id, auth.address)
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return Response(status_code=204)


@router.post(
    "/{product_id}/reviews",
    response_model=ReviewResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def add_review(
    product_id: uuid.UUID,
    data: ReviewCreate,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """Leave a review on a product."""
    review = await review_service.add_review(db, product_id, data)
    if review is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ReviewResponse.model_validate(review)


@router.get(
    "/{product_id}/reviews",
    response_model=list[ReviewResponse],
    dependencies=[Depends(check_rate_limit)],
)
async def get_product_reviews(
    product_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[ReviewResponse]:
    reviews = await review_service.get_reviews_for_product(db, product_id, limit, offset)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get(
    "/{product_id}/sales-count",
    response_model=SalesCountResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def get_product_sales_count(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> SalesCountResponse:
    count = await offer_service.get_product_sales_count(db, product_id)
    return SalesCountResponse(product_id=product_id, sales_count=count)


@router.get(
    "/{product_id}/offers/latest",
    response_model=OfferResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def get_latest_offer(
    product_id: uuid.UUID,
    auth: AuthenticatedWallet = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> OfferResponse:
    """The caller's most recent offer on this product, to resume negotiating."""
    offer = await offer_service.get_latest_offer_for_product(db, product_id, auth.address)
    if offer is None:
        raise HTTPException(status_code=404, detail="No offer yet")
    return OfferResponse.model_validate(offer)
