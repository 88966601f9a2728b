"""Offer change feed over Redis pub/sub.

Every offer mutation publishes a small event on the seller's and the buyer's
channel. Watchers subscribe before checking the database for changes newer
than their cursor, so an update that lands between the check and the wait is
still delivered. Each watch returns the full offer list, never a delta.
"""

import asyncio
import json
import logging
from datetime import UTC, datetime

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from barcel.models.offer import Offer

logger = logging.getLogger(__name__)

SELLER_CHANNEL = "offers:seller:{}"
BUYER_CHANNEL = "offers:buyer:{}"

ROLES = ("seller", "buyer")


def channel_for(role: str, address: str) -> str:
    if role == "seller":
        return SELLER_CHANNEL.format(address)
    if role == "buyer":
        return BUYER_CHANNEL.format(address)
    raise ValueError(f"Unknown role {role!r}")


def _party_column(role: str):  # type: ignore[no-untyped-def]
    return Offer.seller_id if role == "seller" else Offer.buyer_address


async def publish_offer_event(redis: aioredis.Redis, offer: Offer, event: str) -> None:
    """Notify both parties that an offer changed. Failures are logged only."""
    payload = json.dumps({
        "event": event,
        "offer_id": str(offer.offer_id),
        "status": offer.status.value,
        "offer_price": str(offer.offer_price),
        "version": offer.version,
        "updated_at": offer.updated_at.isoformat(),
    })
    try:
        await redis.publish(channel_for("seller", offer.seller_id), payload)
        await redis.publish(channel_for("buyer", offer.buyer_address), payload)
    except RedisError:
        logger.exception("Failed to publish %s event for offer %s", event, offer.offer_id)


async def latest_change(db: AsyncSession, role: str, address: str) -> datetime | None:
    """Newest updated_at across the party's offers."""
    column = _party_column(role)
    result = await db.execute(select(func.max(Offer.updated_at)).where(column == address))
    return result.scalar()


async def _wait_for_message(pubsub, timeout: float) -> bool:  # type: ignore[no-untyped-def]
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return False
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=remaining)
        if message is not None:
            return True


async def wait_for_offer_changes(
    db: AsyncSession,
    redis: aioredis.Redis,
    role: str,
    address: str,
    since: datetime | None,
    timeout: float,
) -> tuple[bool, datetime | None]:
    """Block until the party's offers change after `since`, or timeout.

    Returns (changed, cursor). With no `since` there is nothing to wait for.
    """
    if since is None:
        return True, await latest_change(db, role, address)
    if since.tzinfo is None:
        since = since.replace(tzinfo=UTC)

    channel = channel_for(role, address)
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    try:
        cursor = await latest_change(db, role, address)
        changed = cursor is not None and cursor > since
        # Hand the connection back to the pool before blocking
        await db.commit()
        if not changed:
            changed = await _wait_for_message(pubsub, timeout)
            if changed:
                cursor = await latest_change(db, role, address)
            else:
                logger.debug("Offer watch on %s timed out after %ss", channel, timeout)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()

    return changed, cursor or since
