"""Test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (aiosqlite) with all tables
created, and an in-process Redis stand-in that implements the handful of
commands the app uses (SET NX, EVAL for the rate limiter, PUBLISH and pub/sub).
"""

import asyncio
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from barcel.config import settings
from barcel.database import Base, get_db
from barcel.main import app
from barcel.models.product import Product
from barcel.redis import get_redis
from barcel.schemas.product import ProductCreate
from barcel.services import catalog as catalog_service
from barcel.utils.crypto import generate_nonce, generate_wallet, sign_request


# ---------------------------------------------------------------------------
# Redis stand-in
# ---------------------------------------------------------------------------

class StubPubSub:
    def __init__(self, hub: "StubRedis") -> None:
        self._hub = hub
        self._queue: asyncio.Queue = asyncio.Queue()
        self.channels: set[str] = set()

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self._hub.subscribers.setdefault(channel, []).append(self)

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.discard(channel)
            listeners = self._hub.subscribers.get(channel, [])
            if self in listeners:
                listeners.remove(self)

    async def get_message(
        self, ignore_subscribe_messages: bool = False, timeout: float = 0.0
    ) -> dict | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def aclose(self) -> None:
        await self.unsubscribe(*list(self.channels))

    def deliver(self, channel: str, data: str) -> None:
        self._queue.put_nowait({"type": "message", "channel": channel, "data": data})


class StubRedis:
    def __init__(self) -> None:
        self.keys: dict[str, str] = {}
        self.published: list[tuple[str, dict]] = []
        self.subscribers: dict[str, list[StubPubSub]] = {}
        self.rate_limit_result: list[int] = [1, 99, 0]
        self.eval_keys: list[str] = []

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self.keys:
            return None
        self.keys[key] = value
        return True

    async def eval(self, script: str, numkeys: int, *args: Any) -> list[int]:
        self.eval_keys.extend(args[:numkeys])
        return self.rate_limit_result

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, json.loads(message)))
        listeners = list(self.subscribers.get(channel, []))
        for pubsub in listeners:
            pubsub.deliver(channel, message)
        return len(listeners)

    def pubsub(self) -> StubPubSub:
        return StubPubSub(self)

    def events_on(self, channel: str) -> list[dict]:
        return [payload for ch, payload in self.published if ch == channel]


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    url = settings.test_database_url
    kwargs: dict[str, Any] = {}
    if url.startswith("sqlite"):
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(url, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def stub_redis() -> StubRedis:
    return StubRedis()


@pytest_asyncio.fixture
async def lua_redis() -> AsyncGenerator[fake_aioredis.FakeRedis, None]:
    """In-memory Redis that executes Lua, for the token bucket script."""
    redis = fake_aioredis.FakeRedis()
    yield redis
    await redis.aclose()


@asynccontextmanager
async def _client_with(db_session: AsyncSession, redis: Any) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> AsyncGenerator[Any, None]:
        yield redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, stub_redis: StubRedis
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with overridden DB and Redis dependencies."""
    async with _client_with(db_session, stub_redis) as ac:
        yield ac


@pytest_asyncio.fixture
async def lua_client(
    db_session: AsyncSession, lua_redis: fake_aioredis.FakeRedis
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client whose Redis runs the real rate limiter script."""
    async with _client_with(db_session, lua_redis) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@dataclass
class Wallet:
    private_key: str
    address: str


def make_wallet() -> Wallet:
    private_key, address = generate_wallet()
    return Wallet(private_key=private_key, address=address)


@pytest.fixture
def seller() -> Wallet:
    return make_wallet()


@pytest.fixture
def buyer() -> Wallet:
    return make_wallet()


def make_auth_headers(
    wallet: Wallet,
    method: str,
    path: str,
    body: bytes = b"",
) -> dict[str, str]:
    """Build signed auth headers for a request."""
    timestamp = datetime.now(UTC).isoformat()
    signature = sign_request(wallet.private_key, settings.chain_id, timestamp, method, path, body)
    return {
        "Authorization": f"WalletSig {wallet.address}:{signature}",
        "X-Timestamp": timestamp,
        "X-Nonce": generate_nonce(),
    }


async def signed_request(
    client: AsyncClient,
    wallet: Wallet,
    method: str,
    path: str,
    json_body: dict | None = None,
    params: dict | None = None,
) -> Response:
    """Send a request signed by wallet over the exact bytes that go on the wire."""
    body = b"" if json_body is None else json.dumps(json_body).encode()
    headers = make_auth_headers(wallet, method, path, body)
    if json_body is not None:
        headers["Content-Type"] = "application/json"
    return await client.request(method, path, content=body, headers=headers, params=params)


def product_payload(**overrides: Any) -> dict:
    data = {
        "name": "Vintage film camera",
        "description": "Fully working 35mm camera with a 50mm lens.",
        "images": ["https://example.com/camera.jpg"],
        "price_tiers": ["150.00", "140.00"],
        "category": "electronics",
    }
    data.update(overrides)
    return data


async def make_product(db: AsyncSession, seller_id: str, **overrides: Any) -> Product:
    """Insert a product through the catalog service."""
    data = ProductCreate(**product_payload(**overrides))
    return await catalog_service.add_product(db, seller_id, data)


def money(value: str) -> Decimal:
    return Decimal(value)
