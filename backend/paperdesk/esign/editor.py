"""Placement editor session.

Mirrors the browser editor the signatory uses: drawn signatures are cleaned
up into transparent PNGs, dropped onto the current page and then dragged or
resized. Only one placement can be under interaction at a time; the
interaction is modelled as an explicit state so that invariant holds by
construction.
"""

import base64
import itertools
from dataclasses import dataclass, field, replace
from io import BytesIO
from typing import Optional, Union

from PIL import Image, ImageChops

from paperdesk.esign.coordinates import Size

WHITE_THRESHOLD = 240
MIN_WIDTH = 80.0
MIN_HEIGHT = 50.0
DEFAULT_RECT = (100.0, 100.0, 200.0, 100.0)


def make_background_transparent(png_bytes: bytes, threshold: int = WHITE_THRESHOLD) -> bytes:
    """Return a PNG where every pixel with R, G and B all above ``threshold`` is fully transparent."""
    img = Image.open(BytesIO(png_bytes)).convert("RGBA")
    r, g, b, alpha = img.split()
    near_white = [band.point(lambda v: 255 if v > threshold else 0) for band in (r, g, b)]
    white_mask = ImageChops.multiply(ImageChops.multiply(near_white[0], near_white[1]), near_white[2])
    img.putalpha(ImageChops.subtract(alpha, white_mask))
    out = BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def png_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


class InteractionInProgress(Exception):
    pass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass
class EditorPlacement:
    id: str
    data_url: str
    x: float
    y: float
    width: float
    height: float
    page_number: int


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    placement_id: str
    # pointer position relative to the placement's top-left corner
    offset: Point


@dataclass(frozen=True)
class Resizing:
    placement_id: str
    pointer_start: Point
    start_width: float
    start_height: float


Interaction = Union[Idle, Dragging, Resizing]


@dataclass
class EditorPlacementSession:
    current_page: int = 1
    placements: dict[str, EditorPlacement] = field(default_factory=dict)
    interaction: Interaction = field(default_factory=Idle)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)

    @property
    def active_id(self) -> Optional[str]:
        return None if isinstance(self.interaction, Idle) else self.interaction.placement_id

    def add_signature(self, data_url: str) -> EditorPlacement:
        x, y, width, height = DEFAULT_RECT
        placement = EditorPlacement(
            id=f"sig-{next(self._ids)}",
            data_url=data_url,
            x=x,
            y=y,
            width=width,
            height=height,
            page_number=self.current_page,
        )
        self.placements[placement.id] = placement
        return placement

    def remove(self, placement_id: str) -> None:
        if self.active_id == placement_id:
            self.interaction = Idle()
        self.placements.pop(placement_id, None)

    def _start(self, interaction: Interaction) -> None:
        if not isinstance(self.interaction, Idle):
            raise InteractionInProgress(f"{self.active_id} is already being edited")
        self.interaction = interaction

    def begin_drag(self, placement_id: str, pointer: Point) -> None:
        """``pointer`` is in page coordinates, like every other pointer argument."""
        placement = self.placements[placement_id]
        self._start(Dragging(placement_id, Point(pointer.x - placement.x, pointer.y - placement.y)))

    def begin_resize(self, placement_id: str, pointer: Point) -> None:
        placement = self.placements[placement_id]
        self._start(Resizing(placement_id, pointer, placement.width, placement.height))

    def move(self, pointer: Point) -> Optional[EditorPlacement]:
        state = self.interaction
        if isinstance(state, Dragging):
            updated = replace(
                self.placements[state.placement_id],
                x=max(0.0, pointer.x - state.offset.x),
                y=max(0.0, pointer.y - state.offset.y),
            )
        elif isinstance(state, Resizing):
            updated = replace(
                self.placements[state.placement_id],
                width=max(MIN_WIDTH, state.start_width + pointer.x - state.pointer_start.x),
                height=max(MIN_HEIGHT, state.start_height + pointer.y - state.pointer_start.y),
            )
        else:
            return None
        self.placements[updated.id] = updated
        return updated

    def end(self) -> None:
        self.interaction = Idle()

    def placements_on_page(self, page_number: int) -> list[EditorPlacement]:
        return [p for p in self.placements.values() if p.page_number == page_number]

    def apply_payload(self, render_dimensions: Size) -> dict:
        """Placements in render pixels plus the page size they were positioned against."""
        return {
            "render_dimensions": {"width": render_dimensions.width, "height": render_dimensions.height},
            "placements": [
                {"x": p.x, "y": p.y, "width": p.width, "height": p.height, "page_number": p.page_number}
                for p in self.placements.values()
            ],
        }
