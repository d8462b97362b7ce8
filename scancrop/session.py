"""Editor session for one image: history, tools, zoom, crop and commit.

The session is the single owner of the corner set while an image is open.
Host UIs forward pointer events together with the image element's current
unscaled box; a coordinate mapper is built for every event.
"""

import logging
from typing import Callable, List, Optional

import numpy as np

from scancrop.color.adjust import apply_adjustments
from scancrop.config import EditorConfig
from scancrop.detection.backend import OpenCVBackend, default_backend
from scancrop.detection.detector import detect_corners
from scancrop.editing.coords import CoordinateMapper, ElementBox, ViewTransform
from scancrop.editing.corners import CornerSet, init_default
from scancrop.editing.drag import DragController
from scancrop.errors import BackendUnavailable, DegenerateGeometry
from scancrop.preprocessing.encoder import encode_image
from scancrop.warp.perspective import warp

logger = logging.getLogger(__name__)

TOOL_NONE = "none"
TOOL_CROP = "crop"
TOOL_ADJUST = "adjust"
TOOLS = (TOOL_NONE, TOOL_CROP, TOOL_ADJUST)

CommitCallback = Callable[[bytes], None]


class EditorSession:
    """Editing state for one image.

    Args:
        image: Source image as float32 RGB [0, 1]. Kept read-only.
        on_commit: Called with the encoded result when ``save()`` runs.
        config: Editor configuration. If None, uses defaults.
        backend: Image-processing backend for auto-detection.
    """

    def __init__(
        self,
        image: np.ndarray,
        on_commit: Optional[CommitCallback] = None,
        config: Optional[EditorConfig] = None,
        backend: Optional[OpenCVBackend] = None,
    ) -> None:
        if image.ndim != 3 or image.shape[0] == 0 or image.shape[1] == 0:
            raise ValueError(f"Invalid image shape: {image.shape}, expected (H, W, C)")

        self.config = config or EditorConfig()
        self.backend = backend or default_backend()
        self.on_commit = on_commit

        self.history: List[np.ndarray] = [image]
        self.index = 0

        self.view = ViewTransform()
        self.tool = TOOL_NONE
        self.corners: Optional[CornerSet] = None
        self.brightness = 100.0
        self.contrast = 100.0
        self.rotation = 0.0
        self.space_held = False

        self.drag = DragController(handle_radius=self.config.handle_radius)

    # -------------------------------------------------------------------------
    # Image and history
    # -------------------------------------------------------------------------
    @property
    def image(self) -> np.ndarray:
        return self.history[self.index]

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.history) - 1

    def _clear_edits(self) -> None:
        self.corners = None
        self.brightness = 100.0
        self.contrast = 100.0
        self.rotation = 0.0

    def push_history(self, image: np.ndarray) -> None:
        """Make ``image`` the current state, discarding any redo entries."""
        self.history = self.history[:self.index + 1]
        self.history.append(image)
        self.index = len(self.history) - 1
        self._clear_edits()
        logger.debug(f"History push: {len(self.history)} entries, index={self.index}")

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self.index -= 1
        self.corners = None
        self.rotation = 0.0
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self.index += 1
        self.corners = None
        self.rotation = 0.0
        return True

    def reset(self) -> None:
        """Return to the original image with default view and no pending edits."""
        self.drag.release()
        self.index = 0
        self._clear_edits()
        self.tool = TOOL_NONE
        self.view.zoom = 1.0
        self.view.pan_x = 0.0
        self.view.pan_y = 0.0

    # -------------------------------------------------------------------------
    # Tools and corner set
    # -------------------------------------------------------------------------
    def set_tool(self, tool: str) -> None:
        """Switch tool; entering the crop tool starts a fresh corner set."""
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool!r}")

        self.tool = tool
        self.corners = None
        if tool == TOOL_CROP:
            self.corners = self.initial_corners()

    def initial_corners(self) -> CornerSet:
        """Auto-detected corners when enabled and found, else the default inset."""
        if self.config.auto_detect:
            corners = self._detect()
            if corners is not None:
                return corners

        return init_default(self.width, self.height, self.config.default_inset_ratio)

    def _detect(self) -> Optional[CornerSet]:
        try:
            self.backend.wait_ready()
        except BackendUnavailable as e:
            logger.warning(f"{e}; using default corners")
            return None
        return detect_corners(self.image, self.config, self.backend)

    def redetect(self) -> bool:
        """Re-run auto-detection on the current image.

        Returns:
            True if detection replaced the corner set.
        """
        corners = self._detect()
        if corners is None:
            return False
        self.corners = corners
        return True

    # -------------------------------------------------------------------------
    # View
    # -------------------------------------------------------------------------
    def _set_zoom(self, zoom: float) -> None:
        self.view.zoom = round(min(max(zoom, self.config.zoom_min), self.config.zoom_max), 4)

    def zoom_in(self) -> float:
        self._set_zoom(self.view.zoom + self.config.zoom_step)
        return self.view.zoom

    def zoom_out(self) -> float:
        self._set_zoom(self.view.zoom - self.config.zoom_step)
        return self.view.zoom

    def zoom_reset(self) -> float:
        self.view.zoom = 1.0
        return self.view.zoom

    # -------------------------------------------------------------------------
    # Pointer events
    # -------------------------------------------------------------------------
    def mapper(self, box: ElementBox) -> CoordinateMapper:
        return CoordinateMapper(self.width, self.height, box, self.view)

    @property
    def panning_requested(self) -> bool:
        return self.space_held or self.tool == TOOL_NONE

    def pointer_down(self, x: float, y: float, box: ElementBox) -> bool:
        """Start a pan or a corner/edge drag. Returns True if something started."""
        mapper = self.mapper(box)

        if self.panning_requested:
            return self.drag.press(x, y, None, mapper, panning=True)

        if self.tool != TOOL_CROP or self.corners is None:
            return False

        if self.rotation % 360 != 0:
            logger.debug("Crop handles locked while a rotation preview is pending")
            return False

        return self.drag.press(x, y, self.corners, mapper)

    def pointer_move(self, x: float, y: float, box: ElementBox) -> bool:
        """Continue the current gesture. Returns True if state changed."""
        if self.drag.is_idle:
            return False

        updated = self.drag.move(x, y, self.mapper(box))
        if updated is not None:
            self.corners = updated
        return True

    def pointer_up(self) -> bool:
        return self.drag.release()

    # -------------------------------------------------------------------------
    # Adjustments and crop
    # -------------------------------------------------------------------------
    def set_adjustments(
        self,
        brightness: Optional[float] = None,
        contrast: Optional[float] = None,
        rotation: Optional[float] = None,
    ) -> None:
        """Update preview values; nothing is baked until applied or saved."""
        if brightness is not None:
            self.brightness = float(brightness)
        if contrast is not None:
            self.contrast = float(contrast)
        if rotation is not None:
            self.rotation = float(rotation)

    @property
    def has_pending_adjustments(self) -> bool:
        return self.brightness != 100 or self.contrast != 100 or self.rotation % 360 != 0

    def apply_adjustments(self) -> bool:
        """Bake pending brightness, contrast and rotation into a new history entry."""
        if not self.has_pending_adjustments:
            return False

        adjusted = apply_adjustments(self.image, self.brightness, self.contrast, self.rotation)
        self.push_history(adjusted)
        logger.info(f"Adjustments applied: {self.width}x{self.height}")
        return True

    def apply_crop(self) -> bool:
        """Warp the current image to the corner set and push the result.

        Pending brightness and contrast are applied to the source pixels
        before sampling.

        Raises:
            DegenerateGeometry: The corner set cannot be warped. The session
                is left unchanged.
        """
        if self.corners is None:
            return False
        if not self.drag.is_idle:
            logger.debug("Crop ignored during an active gesture")
            return False

        try:
            result = warp(
                self.image,
                self.corners,
                method=self.config.warp_method,
                brightness=self.brightness,
                contrast=self.contrast,
            )
        except DegenerateGeometry as e:
            logger.warning(f"Crop rejected: {e}")
            raise

        self.push_history(result)
        return True

    def render(self) -> np.ndarray:
        """Current image with pending edits baked in, as ``save()`` would commit it."""
        image = self.image

        if self.corners is not None and self.tool == TOOL_CROP and self.rotation % 360 == 0:
            image = warp(
                image,
                self.corners,
                method=self.config.warp_method,
                brightness=self.brightness,
                contrast=self.contrast,
            )
        elif self.has_pending_adjustments:
            image = apply_adjustments(image, self.brightness, self.contrast, self.rotation)

        return image

    def save(self) -> bytes:
        """Encode the rendered result and hand it to the commit callback.

        Raises:
            DegenerateGeometry: A pending crop cannot be warped; nothing is committed.
        """
        result = self.render()
        payload = encode_image(result, self.config.output_format, self.config.jpeg_quality)

        logger.info(
            f"Committing {result.shape[1]}x{result.shape[0]} "
            f"{self.config.output_format.upper()} ({len(payload)} bytes)"
        )
        if self.on_commit is not None:
            self.on_commit(payload)
        return payload
