"""Tests for bearer credential verification."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from jose import jwt

from app.config import settings
from app.core.identity import (
    FirebaseIdentityProvider,
    IdentityVerifier,
    LocalTokenIdentityProvider,
    extract_bearer_token,
)
from app.core.security import create_access_token, decode_access_token


class SlowProvider:
    async def verify(self, token: str) -> dict:
        await asyncio.sleep(1)
        return {"uid": "late"}


class FailingProvider:
    async def verify(self, token: str) -> dict:
        raise RuntimeError("provider unavailable")


class StaticProvider:
    def __init__(self, claims: dict):
        self.claims = claims

    async def verify(self, token: str) -> dict:
        return self.claims


@pytest.mark.parametrize(
    "header,expected",
    [
        (None, None),
        ("", None),
        ("Basic abc", None),
        ("Bearer ", None),
        ("Bearer abc", "abc"),
        ("bearer   abc ", "abc"),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class TestIdentityVerifier:
    """Tests for IdentityVerifier."""

    async def test_valid_local_token_resolves(self):
        verifier = IdentityVerifier(LocalTokenIdentityProvider())
        token = create_access_token("u1", "u1@medblog.org")

        identity = await verifier.resolve(f"Bearer {token}")

        assert identity is not None
        assert identity.account_id == "u1"
        assert identity.email == "u1@medblog.org"

    async def test_missing_header_is_guest(self):
        verifier = IdentityVerifier(FailingProvider())

        assert await verifier.resolve(None) is None

    async def test_tampered_token_is_guest(self):
        verifier = IdentityVerifier(LocalTokenIdentityProvider())
        token = create_access_token("u1")

        assert await verifier.resolve(f"Bearer {token}x") is None

    async def test_expired_token_is_guest(self):
        verifier = IdentityVerifier(LocalTokenIdentityProvider())
        token = create_access_token("u1", expires_delta=timedelta(seconds=-10))

        assert await verifier.resolve(f"Bearer {token}") is None

    async def test_provider_error_is_guest(self):
        verifier = IdentityVerifier(FailingProvider())

        assert await verifier.resolve("Bearer anything") is None

    async def test_provider_timeout_is_guest(self):
        verifier = IdentityVerifier(SlowProvider(), timeout=0.05)

        assert await verifier.resolve("Bearer anything") is None

    async def test_claims_without_uid_are_guest(self):
        verifier = IdentityVerifier(StaticProvider({"email": "x@medblog.org"}))

        assert await verifier.resolve("Bearer anything") is None


class TestFirebaseIdentityProvider:
    """Tests for FirebaseIdentityProvider."""

    async def test_returns_uid_and_email(self):
        decoded = {"uid": "fb-1", "email": "fb-1@medblog.org", "aud": "medblog"}
        with patch(
            "app.core.identity.verify_firebase_token", AsyncMock(return_value=decoded)
        ) as verify:
            verifier = IdentityVerifier(FirebaseIdentityProvider())
            identity = await verifier.resolve("Bearer firebase-id-token")

        verify.assert_awaited_once_with("firebase-id-token")
        assert identity is not None
        assert identity.account_id == "fb-1"
        assert identity.email == "fb-1@medblog.org"

    async def test_invalid_firebase_token_is_guest(self):
        with patch(
            "app.core.identity.verify_firebase_token",
            AsyncMock(side_effect=ValueError("Invalid Firebase ID token")),
        ):
            verifier = IdentityVerifier(FirebaseIdentityProvider())

            assert await verifier.resolve("Bearer expired") is None


class TestAccessTokens:
    """Tests for locally signed access tokens."""

    def test_round_trip_claims(self):
        claims = decode_access_token(create_access_token("u1", "u1@medblog.org"))

        assert claims["sub"] == "u1"
        assert claims["email"] == "u1@medblog.org"

    def test_other_token_types_are_rejected(self):
        token = jwt.encode(
            {"sub": "u1", "type": "refresh"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_access_token(token) is None

    def test_missing_subject_is_rejected(self):
        token = jwt.encode(
            {"type": "access"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )

        assert decode_access_token(token) is None
