"""Initial schema - users, file metadata and endorsement requests

Revision ID: 0001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Auth ──────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, index=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("mobile", sa.String(20), nullable=True),
        sa.Column(
            "role",
            sa.Enum("customer", "shop_owner", "authorized_signatory", name="userrole"),
            nullable=False,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── Storage ───────────────────────────────────────────────────────

    op.create_table(
        "file_metadata",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("storage_id", sa.String(64), unique=True, index=True, nullable=False),
        sa.Column("original_name", sa.String(500), nullable=False),
        sa.Column("file_type", sa.String(255), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column(
            "uploaded_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True
        ),
        sa.Column("is_processed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False, index=True),
    )

    # ── Endorsement ───────────────────────────────────────────────────

    op.create_table(
        "esign_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "requester_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True
        ),
        sa.Column("requester_type", sa.Enum("customer", "shop_owner", name="requestertype"), nullable=False),
        sa.Column("requester_details", sa.JSON(), nullable=False),
        sa.Column("document_file_id", sa.String(64), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=False),
        sa.Column("require_signature", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("require_seal", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "accepted", "rejected", "cancelled", "signed", name="endorsementstatus"),
            server_default="pending",
            nullable=False,
            index=True,
        ),
        sa.Column("accepted_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("signed_file_id", sa.String(64), nullable=True),
        sa.Column("authority_details", sa.JSON(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False, index=True),
    )

    # Append-only, hash-chained per request
    op.create_table(
        "esign_audit_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("esign_requests.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("performed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("performed_at", sa.BigInteger(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("previous_hash", sa.String(64), nullable=True),
        sa.Column("integrity_hash", sa.String(64), nullable=False),
        sa.UniqueConstraint("request_id", "sequence", name="uq_esign_audit_request_sequence"),
    )


def downgrade() -> None:
    op.drop_table("esign_audit_entries")
    op.drop_table("esign_requests")
    op.drop_table("file_metadata")
    op.drop_table("users")
    sa.Enum(name="endorsementstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="requestertype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
