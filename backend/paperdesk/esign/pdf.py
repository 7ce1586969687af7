"""In-memory PDF document used by the endorsement pipeline.

Pages are read with pypdf. Images registered through :meth:`embed_png` or
:meth:`embed_jpeg` are decoded eagerly with Pillow, restricted to a single
format so a mislabelled payload fails instead of being silently sniffed.
Draw calls are queued per page; :meth:`save` paints each touched page's
images onto a reportlab overlay of the same size and merges it in.
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO

from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from paperdesk.common.errors import SourceDocumentInvalid
from paperdesk.esign.coordinates import Rect, Size

logger = logging.getLogger(__name__)


@dataclass
class EmbeddedImage:
    """Handle to an image registered on a :class:`PdfDocument`."""

    image: Image.Image
    format: str
    width: int
    height: int


@dataclass
class _DrawOp:
    image: EmbeddedImage
    rect: Rect


@dataclass
class PdfDocument:
    reader: PdfReader
    images: list[EmbeddedImage] = field(default_factory=list)
    _ops: dict[int, list[_DrawOp]] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def load(cls, data: bytes) -> "PdfDocument":
        try:
            reader = PdfReader(BytesIO(data))
            if reader.is_encrypted and not reader.decrypt(""):
                raise SourceDocumentInvalid("Source PDF is password protected")
            page_count = len(reader.pages)
        except (PdfReadError, ValueError, KeyError, OSError) as exc:
            raise SourceDocumentInvalid(f"Source document is not a readable PDF: {exc}") from exc
        if page_count == 0:
            raise SourceDocumentInvalid("Source PDF has no pages")
        return cls(reader=reader)

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    def page_size(self, page_index: int) -> Size:
        box = self.reader.pages[page_index].mediabox
        return Size(width=float(box.width), height=float(box.height))

    # -------- Image registration ---------------------------------------------
    def _register(self, data: bytes, fmt: str, mode: str) -> EmbeddedImage:
        img = Image.open(BytesIO(data), formats=[fmt])
        img.load()  # force a full decode so truncated data fails here
        if img.mode != mode:
            img = img.convert(mode)
        handle = EmbeddedImage(image=img, format=fmt, width=img.width, height=img.height)
        self.images.append(handle)
        return handle

    def embed_png(self, data: bytes) -> EmbeddedImage:
        return self._register(data, "PNG", "RGBA")

    def embed_jpeg(self, data: bytes) -> EmbeddedImage:
        return self._register(data, "JPEG", "RGB")

    # -------- Drawing --------------------------------------------------------
    def draw_image(self, page_index: int, image: EmbeddedImage, rect: Rect) -> None:
        self._ops.setdefault(page_index, []).append(_DrawOp(image=image, rect=rect))

    def _overlay_for(self, page_index: int) -> PdfReader:
        box = self.reader.pages[page_index].mediabox
        origin_x, origin_y = float(box.left), float(box.bottom)

        packet = BytesIO()
        c = canvas.Canvas(packet, pagesize=(float(box.right), float(box.top)))
        for op in self._ops[page_index]:
            c.drawImage(
                ImageReader(op.image.image),
                origin_x + op.rect.x,
                origin_y + op.rect.y,
                width=op.rect.width,
                height=op.rect.height,
                mask="auto",
            )
        c.showPage()
        c.save()
        packet.seek(0)
        return PdfReader(packet)

    def save(self) -> bytes:
        writer = PdfWriter()
        for index, page in enumerate(self.reader.pages):
            out_page = writer.add_page(page)
            if index in self._ops:
                out_page.merge_page(self._overlay_for(index).pages[0])
                logger.debug("Merged %d overlay image(s) onto page %d", len(self._ops[index]), index + 1)

        out = BytesIO()
        writer.write(out)
        return out.getvalue()
