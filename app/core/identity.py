"""Bearer credential verification."""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from app.core.firebase import verify_firebase_token
from app.core.security import decode_access_token

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Identity:
    """A verified caller."""

    account_id: str
    email: str | None = None


class IdentityProvider(Protocol):
    """External token verification capability."""

    async def verify(self, token: str) -> dict[str, Any]:
        """Return claims with at least ``uid``; raise on any invalid token."""
        ...


class FirebaseIdentityProvider:
    """Verifies Firebase ID tokens with the Admin SDK."""

    async def verify(self, token: str) -> dict[str, Any]:
        decoded = await verify_firebase_token(token)
        return {"uid": decoded["uid"], "email": decoded.get("email")}


class LocalTokenIdentityProvider:
    """Verifies access tokens signed by this service (development and tests)."""

    async def verify(self, token: str) -> dict[str, Any]:
        claims = decode_access_token(token)
        if claims is None:
            raise ValueError("Invalid access token")
        return {"uid": claims["sub"], "email": claims.get("email")}


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Returns None for a missing header, another scheme, or an empty token.
    """
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


class IdentityVerifier:
    """Resolves a bearer credential to an identity, or None for guests."""

    def __init__(self, provider: IdentityProvider, timeout: float = 5.0):
        """Initialize verifier with a provider and a per-call timeout in seconds."""
        self.provider = provider
        self.timeout = timeout

    async def resolve(self, authorization: str | None) -> Identity | None:
        """
        Resolve an Authorization header value.

        Args:
            authorization: Raw header value, may be None

        Returns:
            Verified identity, or None when the caller is a guest
        """
        token = extract_bearer_token(authorization)
        if token is None:
            return None

        try:
            claims = await asyncio.wait_for(self.provider.verify(token), timeout=self.timeout)
        except TimeoutError:
            logger.warning("identity_verification_timeout", timeout=self.timeout)
            return None
        except Exception as e:
            logger.info("identity_verification_failed", error=str(e))
            return None

        uid = claims.get("uid")
        if not uid:
            logger.warning("identity_claims_missing_uid")
            return None

        return Identity(account_id=uid, email=claims.get("email"))
