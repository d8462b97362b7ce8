"""Hit-testing pointer positions against corner and edge handles."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from scancrop.editing.coords import CoordinateMapper
from scancrop.editing.corners import CornerSet

logger = logging.getLogger(__name__)

HANDLE_RADIUS = 25.0  # screen px

CORNER = "corner"
EDGE = "edge"


@dataclass(frozen=True)
class DragTarget:
    """Handle under the pointer: a corner, or the edge from corner ``index`` to ``index + 1``."""

    kind: str
    index: int

    def __post_init__(self) -> None:
        if self.kind not in (CORNER, EDGE):
            raise ValueError(f"Unknown drag target kind: {self.kind!r}")
        if not 0 <= self.index < 4:
            raise ValueError(f"Drag target index out of range: {self.index}")


def hit_radius(zoom: float, handle_radius: float = HANDLE_RADIUS) -> float:
    """Hit radius in client pixels; the on-screen target keeps a constant size."""
    return handle_radius / zoom


def hit_test(
    pointer_x: float,
    pointer_y: float,
    corners: CornerSet,
    mapper: CoordinateMapper,
    handle_radius: float = HANDLE_RADIUS,
) -> Optional[DragTarget]:
    """Find the handle under a pointer position.

    Corners are tested before edge midpoints, each group in index order, and
    the first handle strictly within the radius wins. Where handles overlap
    visually the corner therefore takes priority.

    Args:
        pointer_x: Pointer x in screen pixels.
        pointer_y: Pointer y in screen pixels.
        corners: Current corner set.
        mapper: Mapper built for the current event.
        handle_radius: Visual handle radius in screen pixels.

    Returns:
        The hit DragTarget, or None.
    """
    radius = hit_radius(mapper.zoom, handle_radius)
    cx, cy = mapper.screen_to_client(pointer_x, pointer_y)

    candidates = [(CORNER, i, corners.corner(i)) for i in range(4)]
    candidates += [(EDGE, i, corners.midpoint(i)) for i in range(4)]

    for kind, index, handle in candidates:
        hx, hy = mapper.natural_to_client(handle)
        if math.hypot(cx - hx, cy - hy) < radius:
            logger.debug(f"Hit {kind} {index} at client ({cx:.1f}, {cy:.1f})")
            return DragTarget(kind, index)

    return None
