"""Article projection used for admin statistics and author anonymization."""

from sqlalchemy import Column, DateTime, Table, Text, func, text

from app.models.accounts import metadata

articles = Table(
    "articles",
    metadata,
    Column("id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    # NULL once the author's account has been erased
    Column("author_id", Text, index=True),
    Column("author_name", Text),
    Column("status", Text, nullable=False, server_default=text("'draft'")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
