"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from barcel.config import settings
from barcel.middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware, SecurityHeadersMiddleware
from barcel.routers import offers, products, sellers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Barcel negotiation service starting (env=%s, chain_id=%d)", settings.env, settings.chain_id)

    yield

    from barcel.database import engine
    from barcel.redis import redis_pool

    await redis_pool.disconnect()
    await engine.dispose()


app = FastAPI(
    title="Barcel Marketplace",
    description="Offer negotiation, catalog and seller reputation for the Barcel marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware (last added runs outermost)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_body_bytes)
app.add_middleware(RequestLoggingMiddleware)

# Routers
app.include_router(products.router)
app.include_router(offers.router)
app.include_router(sellers.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
