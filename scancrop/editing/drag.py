"""Drag controller: the pointer state machine driving corner and edge edits.

States::

    IDLE --press on handle--> DRAGGING --release--> IDLE
    IDLE --press while panning--> PANNING --release--> IDLE

Every move is computed from the corner set captured at press time plus the
total pointer displacement, never chained from the previous move, so a long
drag accumulates no rounding error and replaying the same events always
gives the same result. Move and release events arriving in IDLE are ignored.
"""

import logging
from typing import Optional, Tuple

from scancrop.editing.coords import CoordinateMapper, ViewTransform
from scancrop.editing.corners import CornerSet
from scancrop.editing.hit_test import CORNER, HANDLE_RADIUS, DragTarget, hit_test

logger = logging.getLogger(__name__)

IDLE = "idle"
DRAGGING = "dragging"
PANNING = "panning"


class DragController:
    """Pointer state machine for one editor session."""

    def __init__(self, handle_radius: float = HANDLE_RADIUS) -> None:
        self.handle_radius = handle_radius
        self.state = IDLE
        self.target: Optional[DragTarget] = None
        self.start_pointer: Tuple[float, float] = (0.0, 0.0)
        self.start_corners: Optional[CornerSet] = None
        self._pan_view: Optional[ViewTransform] = None
        self._start_pan: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_idle(self) -> bool:
        return self.state == IDLE

    @property
    def is_dragging(self) -> bool:
        return self.state == DRAGGING

    @property
    def is_panning(self) -> bool:
        return self.state == PANNING

    def press(
        self,
        x: float,
        y: float,
        corners: Optional[CornerSet],
        mapper: CoordinateMapper,
        panning: bool = False,
    ) -> bool:
        """Handle a pointer press.

        Panning is checked before any hit-test: when ``panning`` is set the
        press starts a pan and corners are not considered at all.

        Returns:
            True if the press started a drag or a pan.
        """
        if not self.is_idle:
            logger.debug(f"Press ignored in state {self.state}")
            return False

        if panning:
            self.state = PANNING
            self.start_pointer = (x, y)
            self._pan_view = mapper.view
            self._start_pan = (mapper.view.pan_x, mapper.view.pan_y)
            return True

        if corners is None:
            return False

        target = hit_test(x, y, corners, mapper, self.handle_radius)
        if target is None:
            return False

        self.state = DRAGGING
        self.target = target
        self.start_pointer = (x, y)
        self.start_corners = corners.copy()
        logger.debug(f"Drag started on {target.kind} {target.index}")
        return True

    def move(self, x: float, y: float, mapper: CoordinateMapper) -> Optional[CornerSet]:
        """Handle a pointer move.

        Returns:
            The updated corner set while dragging; None when idle or panning
            (a pan updates the view transform in place).
        """
        if self.state == PANNING:
            view = self._pan_view
            view.pan_x = self._start_pan[0] + (x - self.start_pointer[0])
            view.pan_y = self._start_pan[1] + (y - self.start_pointer[1])
            return None

        if self.state != DRAGGING:
            return None

        dx, dy = mapper.screen_delta_to_natural(self.start_pointer, (x, y))
        start = self.start_corners

        if self.target.kind == CORNER:
            return start.translate_corner(self.target.index, dx, dy)
        return start.translate_edge(self.target.index, dx, dy)

    def release(self) -> bool:
        """Handle a pointer release. Returns True if a drag or pan ended."""
        if self.is_idle:
            return False

        logger.debug(f"Pointer released, leaving state {self.state}")
        self.state = IDLE
        self.target = None
        self.start_corners = None
        self._pan_view = None
        return True
