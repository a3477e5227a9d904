"""Tests for password hashing and session token helpers."""
from __future__ import annotations

import uuid

import pytest

from podsync.core.security import (
    get_password_hash,
    legacy_password_hash,
    mask_token,
    new_session_token,
    parse_session_token,
    verify_password,
)
from podsync.utils.exceptions import BadRequestError


def test_legacy_hash_is_sha256_hex() -> None:
    assert legacy_password_hash("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_verify_legacy_hash() -> None:
    stored = legacy_password_hash("abc")

    assert verify_password("abc", stored)
    assert verify_password("abc", stored.upper() + "\n")
    assert not verify_password("abd", stored)
    assert not verify_password("abc", "")


def test_verify_bcrypt_hash() -> None:
    stored = get_password_hash("correct horse")

    assert stored.startswith("$2")
    assert verify_password("correct horse", stored)
    assert not verify_password("correct horsE", stored)


def test_new_tokens_are_unique_hex() -> None:
    tokens = {new_session_token() for _ in range(20)}

    assert len(tokens) == 20
    for token in tokens:
        assert len(token) == 32
        assert uuid.UUID(token).hex == token


def test_parse_session_token_normalizes() -> None:
    token = uuid.uuid4()

    assert parse_session_token(str(token)) == token.hex
    assert parse_session_token(token.hex.upper()) == token.hex


@pytest.mark.parametrize("raw", ["", "abc", "g" * 32, "1234"])
def test_parse_session_token_rejects_garbage(raw: str) -> None:
    with pytest.raises(BadRequestError):
        parse_session_token(raw)


def test_mask_token() -> None:
    assert mask_token(None) == "-"
    assert mask_token("abcdef0123456789").startswith("abcdef")
    assert "0123456789" not in mask_token("abcdef0123456789")
