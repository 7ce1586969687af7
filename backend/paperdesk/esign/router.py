import uuid
from io import BytesIO
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import RedirectResponse
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from paperdesk.auth.models import AUTHORITY_ROLES, User
from paperdesk.common.audit import ChainVerification
from paperdesk.common.errors import PaperDeskError, raise_http_error
from paperdesk.common.pagination import Page, PaginationParams
from paperdesk.database import get_db
from paperdesk.dependencies import get_current_user, require_roles
from paperdesk.esign.editor import make_background_transparent, png_data_url
from paperdesk.esign.models import EndorsementStatus
from paperdesk.esign.schemas import (
    ApplyEndorsementRequest,
    ApplyEndorsementResponse,
    AuditEntryResponse,
    EndorsementRequestCreate,
    EndorsementRequestResponse,
    StatusUpdate,
    TransparentSignatureResponse,
)
from paperdesk.esign.service import (
    apply_endorsement,
    create_endorsement_request,
    get_endorsement_request_for_user,
    get_signed_document_url,
    list_audit_log,
    list_endorsement_requests,
    update_endorsement_status,
    verify_audit_chain,
)
from paperdesk.storage.blobs import BlobStore, get_blob_store

router = APIRouter()

AUTHORITY = tuple(role.value for role in AUTHORITY_ROLES)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post("", response_model=EndorsementRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: EndorsementRequestCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await create_endorsement_request(db, current_user, data, ip_address=_client_ip(request))
    except PaperDeskError as e:
        raise_http_error(e)


@router.get("", response_model=Page[EndorsementRequestResponse])
async def list_requests(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    request_status: Optional[EndorsementStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
):
    params = PaginationParams(page=page, page_size=page_size)
    items, total = await list_endorsement_requests(db, current_user, params, request_status)
    return Page[EndorsementRequestResponse].create(
        items=[EndorsementRequestResponse.model_validate(r) for r in items], total=total, params=params
    )


# Registered before "/{request_id}" routes so the literal path wins.
@router.post("/signatures/transparent", response_model=TransparentSignatureResponse)
async def transparent_signature(
    current_user: Annotated[User, Depends(get_current_user)],
    file: UploadFile = File(...),
):
    content = await file.read()
    try:
        cleaned = make_background_transparent(content)
    except OSError:
        raise HTTPException(status_code=422, detail="Unreadable signature image")

    with Image.open(BytesIO(cleaned)) as img:
        width, height = img.size
    return TransparentSignatureResponse(data_url=png_data_url(cleaned), width=width, height=height)


@router.get("/{request_id}", response_model=EndorsementRequestResponse)
async def get_request_detail(
    request_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await get_endorsement_request_for_user(db, request_id, current_user)
    except PaperDeskError as e:
        raise_http_error(e)


@router.post("/{request_id}/status", response_model=EndorsementRequestResponse)
async def update_status(
    request_id: uuid.UUID,
    data: StatusUpdate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await update_endorsement_status(
            db,
            request_id,
            current_user,
            data.status,
            rejection_reason=data.rejection_reason,
            ip_address=_client_ip(request),
        )
    except PaperDeskError as e:
        raise_http_error(e)


@router.post("/{request_id}/apply", response_model=ApplyEndorsementResponse)
async def apply(
    request_id: uuid.UUID,
    data: ApplyEndorsementRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
    current_user: Annotated[User, Depends(require_roles(*AUTHORITY))],
):
    try:
        signed_file_id = await apply_endorsement(db, blobs, request_id, data, ip_address=_client_ip(request))
    except PaperDeskError as e:
        raise_http_error(e)
    return ApplyEndorsementResponse(
        request_id=request_id, signed_file_id=signed_file_id, status=EndorsementStatus.signed.value
    )


@router.get("/{request_id}/audit", response_model=list[AuditEntryResponse])
async def get_audit_trail(
    request_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        return await list_audit_log(db, request_id, current_user)
    except PaperDeskError as e:
        raise_http_error(e)


@router.get("/{request_id}/audit/verify", response_model=ChainVerification)
async def verify_audit_trail(
    request_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(*AUTHORITY))],
):
    try:
        return await verify_audit_chain(db, request_id)
    except PaperDeskError as e:
        raise_http_error(e)


@router.get("/{request_id}/download")
async def download_signed_document(
    request_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        url = await get_signed_document_url(db, blobs, request_id, current_user)
    except PaperDeskError as e:
        raise_http_error(e)
    return RedirectResponse(url=url)
