import enum
import uuid
from typing import Optional

from sqlalchemy import JSON, BigInteger, Boolean, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from paperdesk.common.base_models import GUID, EpochCreatedMixin, UUIDBase, now_ms


class EndorsementStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    cancelled = "cancelled"
    signed = "signed"


class RequesterType(str, enum.Enum):
    customer = "customer"
    shop_owner = "shop_owner"


class EndorsementRequest(UUIDBase, EpochCreatedMixin):
    __tablename__ = "esign_requests"

    requester_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    requester_type: Mapped[RequesterType] = mapped_column(
        Enum(RequesterType, name="requestertype"), nullable=False
    )
    # Snapshot taken at creation: {name, mobile, address, shop_number}
    requester_details: Mapped[dict] = mapped_column(JSON, nullable=False)
    document_file_id: Mapped[str] = mapped_column(String(64), nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    require_signature: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_seal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[EndorsementStatus] = mapped_column(
        Enum(EndorsementStatus, name="endorsementstatus"),
        default=EndorsementStatus.pending,
        nullable=False,
        index=True,
    )
    accepted_by: Mapped[Optional[uuid.UUID]] = mapped_column(GUID(), ForeignKey("users.id"), nullable=True)
    signed_file_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # {authority_id, signed_by, signed_at}; present iff signed_file_id is
    authority_details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


class EndorsementAuditEntry(UUIDBase):
    __tablename__ = "esign_audit_entries"
    __table_args__ = (UniqueConstraint("request_id", "sequence", name="uq_esign_audit_request_sequence"),)

    request_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("esign_requests.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    performed_by: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False)
    performed_at: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    previous_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    integrity_hash: Mapped[str] = mapped_column(String(64), nullable=False)
