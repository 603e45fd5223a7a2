"""Database models."""

from app.models.accounts import accounts, metadata
from app.models.approval_requests import approval_requests
from app.models.articles import articles

__all__ = [
    "accounts",
    "approval_requests",
    "articles",
    "metadata",
]
