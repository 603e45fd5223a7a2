"""Approval request model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    func,
    text,
)

from app.models.accounts import metadata

approval_requests = Table(
    "approval_requests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "account_id",
        Text,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("submitted_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Resolution (all NULL while the request is open)
    Column("reviewer_id", Text),
    Column("decision", Text),
    Column("notes", Text),
    Column("resolved_at", DateTime(timezone=True)),
    # At most one open request per account
    Index(
        "uq_approval_requests_open_account",
        "account_id",
        unique=True,
        postgresql_where=text("resolved_at IS NULL"),
        sqlite_where=text("resolved_at IS NULL"),
    ),
    Index("ix_approval_requests_submitted_at", "submitted_at"),
)
