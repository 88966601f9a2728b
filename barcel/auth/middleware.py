"""Wallet signature verification dependency for FastAPI."""

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request

from barcel.config import settings
from barcel.redis import get_redis
from barcel.utils.crypto import is_timestamp_valid, normalize_address, recover_signer

AUTH_SCHEME = "WalletSig "


class AuthenticatedWallet:
    """Container for the verified caller."""

    def __init__(self, address: str) -> None:
        self.address = address


async def verify_request(
    request: Request,
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthenticatedWallet:
    """Verify an EIP-191 signature over the request."""
    auth_header = request.headers.get("Authorization")
    timestamp = request.headers.get("X-Timestamp")
    nonce = request.headers.get("X-Nonce")

    if not auth_header or not timestamp:
        raise HTTPException(status_code=403, detail="Missing authentication headers")

    # Authorization: WalletSig <address>:<signature>
    if not auth_header.startswith(AUTH_SCHEME):
        raise HTTPException(status_code=403, detail="Invalid authorization scheme")

    try:
        credentials = auth_header[len(AUTH_SCHEME):]
        address_str, signature = credentials.split(":", 1)
        address = normalize_address(address_str)
    except (ValueError, IndexError):
        raise HTTPException(status_code=403, detail="Malformed authorization header")

    if not is_timestamp_valid(timestamp, settings.signature_max_age_seconds):
        raise HTTPException(status_code=403, detail="Request timestamp expired")

    body = await request.body()
    signer = recover_signer(
        signature,
        settings.chain_id,
        timestamp,
        request.method.upper(),
        request.url.path,
        body,
    )
    if signer != address:
        raise HTTPException(status_code=403, detail="Invalid signature")

    # Replay protection, checked after the signature so junk cannot burn nonces
    if nonce:
        already_used = not await redis.set(
            f"nonce:{nonce}", "1", nx=True, ex=settings.nonce_ttl_seconds
        )
        if already_used:
            raise HTTPException(status_code=403, detail="Nonce already used")

    return AuthenticatedWallet(address=address)
