"""Domain errors raised by PaperDesk services.

Services raise these and never ``HTTPException``; routers translate them with
:func:`raise_http_error` so the status-code policy lives in one place.
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status


class PaperDeskError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthorizationError(PaperDeskError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PaperDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class RequestNotFound(NotFoundError):
    pass


class SourceDocumentMissing(NotFoundError):
    pass


class OverlayImageMissing(NotFoundError):
    pass


class SourceDocumentInvalid(PaperDeskError):
    status_code = 422


class FileRejected(PaperDeskError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(PaperDeskError):
    status_code = status.HTTP_409_CONFLICT


class InvalidStateForApply(PaperDeskError):
    status_code = status.HTTP_409_CONFLICT


class ConcurrentModificationError(PaperDeskError):
    status_code = status.HTTP_409_CONFLICT


class UnsupportedImageFormat(PaperDeskError):
    """Neither the PNG nor the JPEG codec could read an overlay image."""

    status_code = 422

    def __init__(
        self,
        message: str,
        primary_error: Optional[BaseException] = None,
        fallback_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.primary_error = primary_error
        self.fallback_error = fallback_error


def raise_http_error(exc: PaperDeskError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.message or exc.__class__.__name__) from exc
