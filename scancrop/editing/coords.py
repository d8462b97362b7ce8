"""Coordinate mapping between screen, client and natural image space.

Three spaces are involved:

- screen: pointer positions as reported by input events.
- client: the unscaled layout box of the rendered image element, before
  the zoom transform applied to its container.
- natural: the source image's own pixel grid.

The host reports the element's unscaled box with every event, so a mapper
is built per event and never reused across events.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from scancrop.editing.corners import Point, PointLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementBox:
    """Unscaled layout box of the rendered image element, in screen pixels."""

    left: float
    top: float
    width: float
    height: float


@dataclass
class ViewTransform:
    """Zoom, preview rotation and pan of the editor view.

    Only rendering and hit-testing read this; stored corner coordinates are
    always natural-space and unaffected by it.
    """

    zoom: float = 1.0
    rotation_degrees: float = 0.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class CoordinateMapper:
    """Convert between pointer positions and natural image coordinates.

    Zoom is a transform applied to a container (origin at the element's
    top-left corner) followed by the pan offset, so
    ``screen = box.origin + pan + client * zoom`` and
    ``natural = client * natural_width / box.width``.
    """

    def __init__(
        self,
        natural_width: float,
        natural_height: float,
        box: ElementBox,
        view: ViewTransform,
    ) -> None:
        self.natural_width = float(natural_width)
        self.natural_height = float(natural_height)
        self.box = box
        self.view = view

        if box.width <= 0:
            logger.debug("Element box has zero width, using unit scale")
            self.scale = 1.0
        else:
            self.scale = self.natural_width / float(box.width)

    @property
    def zoom(self) -> float:
        return self.view.zoom

    def screen_to_client(self, px: float, py: float) -> Tuple[float, float]:
        zoom = self.view.zoom
        return (
            (px - self.box.left - self.view.pan_x) / zoom,
            (py - self.box.top - self.view.pan_y) / zoom,
        )

    def client_to_screen(self, cx: float, cy: float) -> Tuple[float, float]:
        zoom = self.view.zoom
        return (
            self.box.left + self.view.pan_x + cx * zoom,
            self.box.top + self.view.pan_y + cy * zoom,
        )

    def client_to_natural(self, cx: float, cy: float) -> Point:
        return Point(cx * self.scale, cy * self.scale)

    def natural_to_client(self, point: PointLike) -> Tuple[float, float]:
        return float(point[0]) / self.scale, float(point[1]) / self.scale

    def screen_to_natural(self, px: float, py: float) -> Point:
        cx, cy = self.screen_to_client(px, py)
        return self.client_to_natural(cx, cy)

    def natural_to_screen(self, point: PointLike) -> Tuple[float, float]:
        cx, cy = self.natural_to_client(point)
        return self.client_to_screen(cx, cy)

    def screen_delta_to_natural(
        self,
        start: Tuple[float, float],
        current: Tuple[float, float],
    ) -> Tuple[float, float]:
        """Natural-space displacement between two pointer positions."""
        a = self.screen_to_natural(*start)
        b = self.screen_to_natural(*current)
        return b.x - a.x, b.y - a.y
