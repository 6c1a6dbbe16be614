"""create reference verification tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:41.118204
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REFERENCE_TYPES = (
    "employer",
    "previous_landlord",
    "character",
    "business_partner",
    "family_guarantor",
    "saccos_member",
    "chama_member",
    "religious_leader",
    "community_elder",
)


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("verification_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "verification_progress >= 0 AND verification_progress <= 100",
            name="ck_tenants_verification_progress_range",
        ),
    )
    op.create_index("ix_tenants_email", "tenants", ["email"])

    op.create_table(
        "consents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requester_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("data_retention", sa.JSON(), nullable=False),
        sa.Column("status", _enum("consentstatus", "active", "revoked"), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("revoked_reason", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_consents_tenant_id", "consents", ["tenant_id"])
    op.create_index(
        "uq_consents_one_active_per_tenant",
        "consents",
        ["tenant_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "reference_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "reference_type", _enum("referencetype", *REFERENCE_TYPES), nullable=False
        ),
        sa.Column("provider_name", sa.String(length=200), nullable=False),
        sa.Column("provider_email", sa.String(length=255), nullable=False),
        sa.Column("provider_phone", sa.String(length=20), nullable=True),
        sa.Column("provider_relationship", sa.String(length=120), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False, unique=True),
        sa.Column(
            "status",
            _enum("referencestatus", "pending", "completed", "declined"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("reminder_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reminder_sent", sa.DateTime(), nullable=True),
        sa.Column("verification_details", sa.JSON(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column(
            "decline_reason",
            _enum(
                "declinereason",
                "unreachable",
                "not_acquainted",
                "conflict_of_interest",
                "insufficient_information",
                "other",
            ),
            nullable=True,
        ),
        sa.Column("decline_comment", sa.Text(), nullable=True),
        sa.Column("declined_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_reference_requests_rating_range",
        ),
    )
    op.create_index("ix_reference_requests_tenant_id", "reference_requests", ["tenant_id"])
    op.create_index(
        "ix_reference_requests_reference_type", "reference_requests", ["reference_type"]
    )
    op.create_index("ix_reference_requests_status", "reference_requests", ["status"])

    op.create_table(
        "reference_attempts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "reference_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reference_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
        sa.Column(
            "delivery_status",
            _enum("deliverystatus", "sent", "delivered", "failed", "bounced"),
            nullable=False,
        ),
        sa.Column("delivery_details", sa.String(length=255), nullable=True),
        sa.UniqueConstraint(
            "reference_id", "attempt_number", name="uq_reference_attempt_number"
        ),
    )
    op.create_index(
        "ix_reference_attempts_reference_id", "reference_attempts", ["reference_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("reference_attempts")
    op.drop_table("reference_requests")
    op.drop_index("uq_consents_one_active_per_tenant", table_name="consents")
    op.drop_table("consents")
    op.drop_table("tenants")
