import logging
import re
import uuid
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paperdesk.auth.models import AUTHORITY_ROLES, User, UserRole
from paperdesk.common.audit import ChainVerification, compute_integrity_hash, verify_chain
from paperdesk.common.base_models import now_ms
from paperdesk.common.errors import (
    AuthorizationError,
    ConcurrentModificationError,
    FileRejected,
    InvalidStateForApply,
    NotFoundError,
    OverlayImageMissing,
    RequestNotFound,
    SourceDocumentMissing,
)
from paperdesk.common.pagination import PaginationParams
from paperdesk.config import settings
from paperdesk.esign.coordinates import Rect, Size, map_placement
from paperdesk.esign.images import decode_inline_image, embed
from paperdesk.esign.models import EndorsementAuditEntry, EndorsementRequest, EndorsementStatus, RequesterType
from paperdesk.esign.pdf import PdfDocument
from paperdesk.esign.schemas import ApplyEndorsementRequest, EndorsementRequestCreate
from paperdesk.esign.state import (
    AUDIT_ACTIONS,
    CREATED_ACTION,
    USER_EVENTS,
    EndorsementEvent,
    plan_transition,
)
from paperdesk.storage.blobs import BlobStore
from paperdesk.storage.service import get_file_metadata, record_file_metadata

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


# ── Helpers ─────────────────────────────────────────────────────────────────────


def signed_document_name(requester_name: Optional[str]) -> str:
    """``"  Jane   Doe  "`` -> ``"jane_doe-signed-document.pdf"``."""
    stem = _WHITESPACE.sub("_", (requester_name or "").strip()).lower() or "user"
    return f"{stem}-signed-document.pdf"


def resolve_page_index(page_number: int, page_count: int) -> int:
    """0-based index for a 1-based page number, falling back to the first page."""
    index = page_number - 1
    if 0 <= index < page_count:
        return index
    logger.info("Page %d out of range for %d-page document, using page 1", page_number, page_count)
    return 0


def _can_view(request: EndorsementRequest, user: User) -> bool:
    return user.is_authority or request.requester_id == user.id


async def _get_request(db: AsyncSession, request_id: uuid.UUID) -> EndorsementRequest:
    result = await db.execute(select(EndorsementRequest).where(EndorsementRequest.id == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise RequestNotFound("Request not found")
    return request


async def _append_audit_entry(
    db: AsyncSession,
    request_id: uuid.UUID,
    action: str,
    performed_by: uuid.UUID,
    ip_address: Optional[str] = None,
) -> EndorsementAuditEntry:
    last_result = await db.execute(
        select(EndorsementAuditEntry)
        .where(EndorsementAuditEntry.request_id == request_id)
        .order_by(EndorsementAuditEntry.sequence.desc())
        .limit(1)
    )
    last = last_result.scalar_one_or_none()
    sequence = last.sequence + 1 if last else 1
    previous_hash = last.integrity_hash if last else None

    entry_id = uuid.uuid4()
    performed_at = now_ms()
    entry = EndorsementAuditEntry(
        id=entry_id,
        request_id=request_id,
        sequence=sequence,
        action=action,
        performed_by=performed_by,
        performed_at=performed_at,
        ip_address=ip_address,
        previous_hash=previous_hash,
        integrity_hash=compute_integrity_hash(
            str(entry_id),
            str(request_id),
            sequence,
            action,
            str(performed_by),
            performed_at,
            ip_address,
            previous_hash,
        ),
    )
    db.add(entry)
    await db.flush()
    return entry


# ── Lifecycle ───────────────────────────────────────────────────────────────────


async def create_endorsement_request(
    db: AsyncSession,
    user: User,
    data: EndorsementRequestCreate,
    ip_address: Optional[str] = None,
) -> EndorsementRequest:
    source = await get_file_metadata(db, data.document_file_id)
    if source is None:
        raise NotFoundError("Document file not found")
    if source.uploaded_by != user.id:
        raise AuthorizationError("Document file belongs to another user")
    if source.file_type != "application/pdf":
        raise FileRejected("Only PDF documents can be endorsed")

    request = EndorsementRequest(
        requester_id=user.id,
        requester_type=RequesterType.shop_owner if user.role == UserRole.shop_owner else RequesterType.customer,
        requester_details=data.details.model_dump(),
        document_file_id=data.document_file_id,
        purpose=data.purpose,
        require_signature=data.require_signature,
        require_seal=data.require_seal,
        status=EndorsementStatus.pending,
    )
    db.add(request)
    await db.flush()

    await _append_audit_entry(db, request.id, CREATED_ACTION, user.id, ip_address)
    await db.refresh(request)
    logger.info("Endorsement request %s created by %s", request.id, user.id)
    return request


async def transition(
    db: AsyncSession,
    request: EndorsementRequest,
    event: EndorsementEvent,
    actor: Optional[User],
    values: Optional[dict] = None,
    performed_by: Optional[uuid.UUID] = None,
    ip_address: Optional[str] = None,
) -> EndorsementRequest:
    """Apply ``event`` to ``request`` as a compare-and-swap on (status, version).

    If another writer moved the row since ``request`` was read, nothing is
    written and :class:`ConcurrentModificationError` is raised.
    """
    target = plan_transition(request, event, actor)

    result = await db.execute(
        update(EndorsementRequest)
        .where(
            EndorsementRequest.id == request.id,
            EndorsementRequest.status == request.status,
            EndorsementRequest.version == request.version,
        )
        .values(status=target, version=request.version + 1, **(values or {}))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrentModificationError("Request was modified concurrently; reload and retry")

    credited = performed_by or (actor.id if actor else None)
    await _append_audit_entry(db, request.id, AUDIT_ACTIONS[event], credited, ip_address)
    await db.refresh(request)
    logger.info("Endorsement request %s -> %s (by %s)", request.id, target.value, credited)
    return request


async def update_endorsement_status(
    db: AsyncSession,
    request_id: uuid.UUID,
    actor: User,
    status: str,
    rejection_reason: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> EndorsementRequest:
    request = await _get_request(db, request_id)
    event = USER_EVENTS[EndorsementStatus(status)]

    values: dict = {}
    if event == EndorsementEvent.accept:
        values["accepted_by"] = actor.id
    elif event == EndorsementEvent.reject:
        values["rejection_reason"] = rejection_reason

    return await transition(db, request, event, actor, values=values, ip_address=ip_address)


# ── Endorsement application ─────────────────────────────────────────────────────


def _overlay_bytes(
    blobs: BlobStore, label: str, file_id: Optional[str], inline_data: Optional[str]
) -> Optional[bytes]:
    if file_id:
        data = blobs.get(file_id)
        if data is None:
            raise OverlayImageMissing(f"{label.capitalize()} image {file_id} not found")
        return data
    if inline_data:
        return decode_inline_image(inline_data)
    return None


async def _resolve_authority(db: AsyncSession, request: EndorsementRequest) -> Optional[User]:
    if settings.esign_authority_resolution == "accepting_user":
        if request.accepted_by is None:
            return None
        result = await db.execute(select(User).where(User.id == request.accepted_by))
        return result.scalar_one_or_none()

    result = await db.execute(
        select(User)
        .where(User.role.in_(AUTHORITY_ROLES), User.is_active.is_(True))
        .order_by(User.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def apply_endorsement(
    db: AsyncSession,
    blobs: BlobStore,
    request_id: uuid.UUID,
    payload: ApplyEndorsementRequest,
    ip_address: Optional[str] = None,
) -> str:
    """Draw the signature and/or seal onto the request's PDF and mark it signed.

    Everything up to storing the new PDF is local work on a private document
    object; the database is only touched in the final commit, so a failure
    (missing file, undecodable image) leaves the request exactly as it was.
    """
    request = await _get_request(db, request_id)
    if request.status != EndorsementStatus.accepted:
        raise InvalidStateForApply(f"Request must be accepted before signing (is {request.status.value})")

    source = blobs.get(request.document_file_id)
    if source is None:
        raise SourceDocumentMissing("PDF file not found in storage")

    document = PdfDocument.load(source)
    page_index = resolve_page_index(payload.page_number, document.page_count)
    page_size = document.page_size(page_index)
    render_size: Optional[Size] = payload.render_dimensions.to_size() if payload.render_dimensions else None
    logger.debug(
        "Endorsing request %s on page %d (%sx%s pt)", request.id, page_index + 1, page_size.width, page_size.height
    )

    overlays = (
        ("signature", payload.signature_placement, payload.signature_file_id, payload.signature_data),
        ("seal", payload.seal_placement, payload.seal_file_id, payload.seal_data),
    )
    for label, placement, file_id, inline_data in overlays:
        if placement is None:
            continue
        data = _overlay_bytes(blobs, label, file_id, inline_data)
        if data is None:
            logger.warning("No %s image supplied for request %s, skipping overlay", label, request.id)
            continue
        image = embed(document, data)
        rect: Rect = map_placement(placement.to_rect(), render_size, page_size)
        document.draw_image(page_index, image, rect)

    signed_pdf = document.save()
    signed_file_id = blobs.store(signed_pdf, "application/pdf")

    # Single mutating commit from here on.
    authority = await _resolve_authority(db, request)
    if authority is None:
        logger.warning("No authority account found for request %s, crediting the requester", request.id)
    credited = authority.id if authority else request.requester_id

    await transition(
        db,
        request,
        EndorsementEvent.sign,
        actor=None,
        values={
            "signed_file_id": signed_file_id,
            "authority_details": {
                "authority_id": settings.esign_authority_id,
                "signed_by": authority.name if authority else settings.esign_default_signatory_name,
                "signed_at": now_ms(),
            },
        },
        performed_by=credited,
        ip_address=ip_address,
    )

    requester = (await db.execute(select(User).where(User.id == request.requester_id))).scalar_one_or_none()
    await record_file_metadata(
        db,
        storage_id=signed_file_id,
        original_name=signed_document_name(requester.name if requester else request.requester_details.get("name")),
        file_type="application/pdf",
        file_size=len(signed_pdf),
        uploaded_by=credited,
        is_processed=True,
    )

    logger.info("Endorsement complete for request %s, signed file %s", request.id, signed_file_id)
    return signed_file_id


# ── Queries ─────────────────────────────────────────────────────────────────────


async def get_endorsement_request(db: AsyncSession, request_id: uuid.UUID) -> Optional[EndorsementRequest]:
    result = await db.execute(select(EndorsementRequest).where(EndorsementRequest.id == request_id))
    return result.scalar_one_or_none()


async def get_endorsement_request_for_user(
    db: AsyncSession, request_id: uuid.UUID, user: User
) -> EndorsementRequest:
    request = await _get_request(db, request_id)
    if not _can_view(request, user):
        raise AuthorizationError("Access denied")
    return request


async def list_endorsement_requests(
    db: AsyncSession,
    user: User,
    params: PaginationParams,
    status: Optional[EndorsementStatus] = None,
) -> tuple[list[EndorsementRequest], int]:
    query = select(EndorsementRequest)
    count_query = select(func.count(EndorsementRequest.id))

    # Authorities see every request, everyone else only their own.
    if not user.is_authority:
        query = query.where(EndorsementRequest.requester_id == user.id)
        count_query = count_query.where(EndorsementRequest.requester_id == user.id)

    if status:
        query = query.where(EndorsementRequest.status == status)
        count_query = count_query.where(EndorsementRequest.status == status)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(EndorsementRequest.created_at.desc()).offset(params.offset).limit(params.page_size)
    )
    return list(result.scalars().all()), total


async def list_audit_log(
    db: AsyncSession, request_id: uuid.UUID, user: Optional[User] = None
) -> list[EndorsementAuditEntry]:
    request = await _get_request(db, request_id)
    if user is not None and not _can_view(request, user):
        raise AuthorizationError("Access denied to audit logs")

    result = await db.execute(
        select(EndorsementAuditEntry)
        .where(EndorsementAuditEntry.request_id == request_id)
        .order_by(EndorsementAuditEntry.performed_at.asc(), EndorsementAuditEntry.sequence.asc())
    )
    return list(result.scalars().all())


async def verify_audit_chain(db: AsyncSession, request_id: uuid.UUID) -> ChainVerification:
    await _get_request(db, request_id)
    result = await db.execute(
        select(EndorsementAuditEntry)
        .where(EndorsementAuditEntry.request_id == request_id)
        .order_by(EndorsementAuditEntry.sequence.asc())
    )
    return verify_chain(result.scalars().all())


async def get_signed_document_url(
    db: AsyncSession, blobs: BlobStore, request_id: uuid.UUID, user: User
) -> str:
    request = await get_endorsement_request_for_user(db, request_id, user)
    if request.status != EndorsementStatus.signed or not request.signed_file_id:
        raise NotFoundError("Signed document not available")
    return blobs.get_url(request.signed_file_id)
