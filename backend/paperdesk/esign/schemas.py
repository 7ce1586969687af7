import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from paperdesk.esign.coordinates import Rect, Size
from paperdesk.esign.models import EndorsementStatus, RequesterType

# ── Create schemas ──────────────────────────────────────────────────────────────


class RequesterDetails(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    mobile: str = Field(min_length=1, max_length=20)
    address: str = Field(min_length=1, max_length=1000)
    shop_number: Optional[str] = Field(default=None, max_length=50)


class EndorsementRequestCreate(BaseModel):
    details: RequesterDetails
    document_file_id: str = Field(min_length=1, max_length=64)
    purpose: str = Field(min_length=1, max_length=2000)
    require_signature: bool = True
    require_seal: bool = False

    @model_validator(mode="after")
    def _needs_an_overlay(self):
        if not (self.require_signature or self.require_seal):
            raise ValueError("At least one of require_signature or require_seal must be true")
        return self


class StatusUpdate(BaseModel):
    status: Literal["accepted", "rejected", "cancelled"]
    rejection_reason: Optional[str] = Field(default=None, max_length=2000)


# ── Endorsement application ─────────────────────────────────────────────────────


class Placement(BaseModel):
    """Rectangle in render pixels, origin at the top-left of the page."""

    x: float
    y: float
    width: float
    height: float

    def to_rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, height=self.height)


class RenderDimensions(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    def to_size(self) -> Size:
        return Size(width=self.width, height=self.height)


class ApplyEndorsementRequest(BaseModel):
    page_number: int = 1
    render_dimensions: Optional[RenderDimensions] = None
    signature_placement: Optional[Placement] = None
    seal_placement: Optional[Placement] = None
    # Each overlay comes either inline (base64, data URL allowed) or from the blob store.
    signature_data: Optional[str] = None
    seal_data: Optional[str] = None
    signature_file_id: Optional[str] = None
    seal_file_id: Optional[str] = None


class ApplyEndorsementResponse(BaseModel):
    request_id: uuid.UUID
    signed_file_id: str
    status: str


# ── Response schemas ────────────────────────────────────────────────────────────


class AuthorityDetails(BaseModel):
    authority_id: str
    signed_by: str
    signed_at: int


class EndorsementRequestResponse(BaseModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    requester_type: RequesterType
    requester_details: RequesterDetails
    document_file_id: str
    purpose: str
    require_signature: bool
    require_seal: bool
    status: EndorsementStatus
    accepted_by: Optional[uuid.UUID]
    signed_file_id: Optional[str]
    authority_details: Optional[AuthorityDetails]
    rejection_reason: Optional[str]
    created_at: int
    version: int

    model_config = {"from_attributes": True}


class AuditEntryResponse(BaseModel):
    id: uuid.UUID
    request_id: uuid.UUID
    sequence: int
    action: str
    performed_by: uuid.UUID
    performed_at: int
    ip_address: Optional[str]
    previous_hash: Optional[str]
    integrity_hash: str

    model_config = {"from_attributes": True}


class TransparentSignatureResponse(BaseModel):
    data_url: str
    width: int
    height: int
