"""Account model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    func,
    text,
)

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    # Identity provider uid (SOURCE OF TRUTH for identity)
    Column("id", Text, primary_key=True),
    # Profile info
    Column("email", Text, nullable=False, index=True),
    Column("display_name", Text),
    Column("phone", String(32)),
    # Access control, read only through app.core.roles.normalize_account
    Column("role", Text, nullable=False, server_default=text("'patient'")),
    Column("approval_status", Text, nullable=False, server_default=text("'approved'")),
    # Professional metadata
    Column("professional_type", Text),
    Column("other_professional_type", Text),
    Column("license_number", Text),
    Column("specialization", Text),
    # Consents
    Column("newsletter_subscribed", Boolean, nullable=False, server_default=text("false")),
    Column("gdpr_consent", Boolean, nullable=False, server_default=text("false")),
    Column("gdpr_consent_at", DateTime(timezone=True)),
    # Last review
    Column("review_notes", Text),
    Column("reviewed_by", Text),
    Column("reviewed_at", DateTime(timezone=True)),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
