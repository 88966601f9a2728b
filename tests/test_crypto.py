"""Tests for wallet address and signature helpers."""

from datetime import UTC, datetime, timedelta

import pytest

from barcel.utils.crypto import (
    build_signature_message,
    generate_nonce,
    generate_wallet,
    is_timestamp_valid,
    normalize_address,
    recover_signer,
    sign_request,
)


def test_normalize_address_lowercases() -> None:
    mixed = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
    assert normalize_address(mixed) == mixed.lower()


@pytest.mark.parametrize(
    "bad",
    ["", "0x123", "AbCdEf0123456789aBcDeF0123456789AbCdEf01", "0x" + "g" * 40, "0x" + "a" * 41],
)
def test_normalize_address_rejects_malformed(bad: str) -> None:
    with pytest.raises(ValueError):
        normalize_address(bad)


def test_generate_wallet() -> None:
    private_key, address = generate_wallet()
    assert private_key.startswith("0x")
    assert len(private_key) == 66
    assert normalize_address(address) == address


def test_signature_message_format() -> None:
    message = build_signature_message(44787, "2026-01-01T00:00:00+00:00", "POST", "/offers", b"")
    lines = message.split("\n")
    assert lines[0] == "barcel:44787"
    assert lines[1:4] == ["2026-01-01T00:00:00+00:00", "POST", "/offers"]
    # sha256 of the empty body
    assert lines[4] == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_sign_and_recover() -> None:
    private_key, address = generate_wallet()
    ts = datetime.now(UTC).isoformat()
    sig = sign_request(private_key, 44787, ts, "POST", "/offers", b'{"a":1}')
    assert recover_signer(sig, 44787, ts, "POST", "/offers", b'{"a":1}') == address


def test_recover_with_different_body_yields_other_address() -> None:
    private_key, address = generate_wallet()
    ts = datetime.now(UTC).isoformat()
    sig = sign_request(private_key, 44787, ts, "POST", "/offers", b"one")
    assert recover_signer(sig, 44787, ts, "POST", "/offers", b"two") != address


def test_recover_garbage_signature_returns_none() -> None:
    assert recover_signer("0xdeadbeef", 44787, "ts", "GET", "/", b"") is None


def test_nonce_uniqueness() -> None:
    assert len({generate_nonce() for _ in range(100)}) == 100


def test_timestamp_window() -> None:
    now = datetime.now(UTC)
    assert is_timestamp_valid(now.isoformat())
    assert not is_timestamp_valid((now - timedelta(seconds=60)).isoformat())
    assert not is_timestamp_valid((now + timedelta(seconds=60)).isoformat())
    assert not is_timestamp_valid(now.replace(tzinfo=None).isoformat())
    assert not is_timestamp_valid("yesterday")
