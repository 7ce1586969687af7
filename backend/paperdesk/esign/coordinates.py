"""Render-space to PDF point-space conversion.

The browser preview positions overlays in pixels with the origin at the
top-left of the rendered page. PDF pages use points with the origin at the
bottom-left, and images are placed by their bottom-left corner.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


def map_placement(placement: Rect, render_dimensions: Optional[Size], page_size: Size) -> Rect:
    """Convert a render-pixel rectangle into the page's point space.

    Without ``render_dimensions`` the render space is taken to be the point
    space already (scale 1). Degenerate sizes are passed through unchanged.
    """
    if render_dimensions is None:
        scale_x = scale_y = 1.0
    else:
        scale_x = page_size.width / render_dimensions.width
        scale_y = page_size.height / render_dimensions.height

    return Rect(
        x=placement.x * scale_x,
        # anchor the bottom edge: top-left y plus height, flipped
        y=page_size.height - (placement.y + placement.height) * scale_y,
        width=placement.width * scale_x,
        height=placement.height * scale_y,
    )
