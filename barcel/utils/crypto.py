"""Wallet signature utilities using eth-account (EIP-191 personal_sign)."""

import hashlib
import re
import secrets
from datetime import UTC, datetime

from eth_account import Account
from eth_account.messages import encode_defunct

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate an EVM address and return its lower-cased form."""
    if not _ADDRESS_PATTERN.match(address):
        raise ValueError("Wallet address must be 0x followed by 40 hex characters")
    return address.lower()


def generate_wallet() -> tuple[str, str]:
    """Generate a throwaway wallet. Returns (private_key_hex, address)."""
    account = Account.create()
    return "0x" + bytes(account.key).hex(), account.address.lower()


def build_signature_message(
    chain_id: int,
    timestamp: str,
    method: str,
    path: str,
    body: bytes,
) -> str:
    """Build the text to sign: barcel:chain\\ntimestamp\\nmethod\\npath\\nsha256(body)."""
    body_hash = hashlib.sha256(body).hexdigest()
    return f"barcel:{chain_id}\n{timestamp}\n{method}\n{path}\n{body_hash}"


def sign_request(
    private_key_hex: str,
    chain_id: int,
    timestamp: str,
    method: str,
    path: str,
    body: bytes,
) -> str:
    """Sign a request and return the 0x-prefixed signature."""
    message = build_signature_message(chain_id, timestamp, method, path, body)
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key_hex)
    return "0x" + bytes(signed.signature).hex()


def recover_signer(
    signature_hex: str,
    chain_id: int,
    timestamp: str,
    method: str,
    path: str,
    body: bytes,
) -> str | None:
    """Recover the lower-cased signer address, or None if the signature is unusable."""
    message = build_signature_message(chain_id, timestamp, method, path, body)
    try:
        return Account.recover_message(
            encode_defunct(text=message), signature=signature_hex
        ).lower()
    except Exception:
        return None


def generate_nonce() -> str:
    """Generate a cryptographically secure nonce."""
    return secrets.token_hex(16)


def is_timestamp_valid(timestamp: str, max_age_seconds: int = 30) -> bool:
    """Check if a timestamp is within the allowed window."""
    try:
        ts = datetime.fromisoformat(timestamp)
        if ts.tzinfo is None:
            return False
        now = datetime.now(UTC)
        delta = abs((now - ts).total_seconds())
        return delta <= max_age_seconds
    except (ValueError, TypeError):
        return False
