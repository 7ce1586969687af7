import base64
import binascii
import logging
from typing import Callable, Protocol

from paperdesk.common.errors import UnsupportedImageFormat
from paperdesk.esign.pdf import EmbeddedImage

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89\x50\x4e\x47"


class ImageEmbedder(Protocol):
    def embed_png(self, data: bytes) -> EmbeddedImage: ...

    def embed_jpeg(self, data: bytes) -> EmbeddedImage: ...


def sniff_format(data: bytes) -> str:
    """Return ``"png"`` for the PNG magic number, ``"jpeg"`` for anything else."""
    return "png" if data[:4] == PNG_SIGNATURE else "jpeg"


def _codec(document: ImageEmbedder, fmt: str) -> Callable[[bytes], EmbeddedImage]:
    return document.embed_png if fmt == "png" else document.embed_jpeg


def embed(document: ImageEmbedder, data: bytes) -> EmbeddedImage:
    """Register ``data`` on ``document``, retrying once with the other codec.

    Canvas-drawn signatures are always PNG; uploaded seals may be JPEG or
    carry the wrong extension, so one blind retry covers both.
    """
    primary = sniff_format(data)
    fallback = "jpeg" if primary == "png" else "png"

    try:
        return _codec(document, primary)(data)
    except Exception as primary_error:
        logger.warning("Embedding as %s failed (%s), retrying as %s", primary, primary_error, fallback)
        try:
            return _codec(document, fallback)(data)
        except Exception as fallback_error:
            raise UnsupportedImageFormat(
                "Failed to embed image: both PNG and JPEG decoding failed",
                primary_error=primary_error,
                fallback_error=fallback_error,
            ) from fallback_error


def decode_inline_image(payload: str) -> bytes:
    """Decode a base64 payload, with or without a ``data:...;base64,`` prefix."""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedImageFormat("Inline image is not valid base64", primary_error=exc) from exc
