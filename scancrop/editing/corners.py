"""Corner-set model: four ordered points in natural image-pixel space.

Points are ordered clockwise starting top-left: ``[TL, TR, BR, BL]``. Edge
``i`` runs from corner ``i`` to corner ``(i + 1) % 4``; its midpoint is
derived on every read and never stored.
"""

import logging
from typing import List, NamedTuple, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

class Point(NamedTuple):
    """A position in natural image-pixel space."""

    x: float
    y: float


PointLike = Union[Point, Tuple[float, float], Sequence[float], np.ndarray]


def clamp(point: PointLike, width: float, height: float) -> Point:
    """Clamp a point component-wise to ``[0, width] x [0, height]``."""
    x = min(max(float(point[0]), 0.0), float(width))
    y = min(max(float(point[1]), 0.0), float(height))
    return Point(x, y)


def sort_canonical(points: Union[np.ndarray, Sequence[PointLike]]) -> np.ndarray:
    """Order four unordered points as top-left, top-right, bottom-right, bottom-left.

    Uses the sum/difference heuristic: TL has the smallest ``x + y``, BR the
    largest; TR has the smallest ``y - x``, BL the largest. Non-convex or
    near-collinear inputs can come back degenerate; the warp engine rejects
    those rather than this function repairing them.

    Args:
        points: Four (x, y) points in any order.

    Returns:
        Ordered float64 array of shape (4, 2).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] != 4:
        raise ValueError(f"Expected 4 points, got {pts.shape[0]}")

    s = pts.sum(axis=1)
    d = np.diff(pts, axis=1).flatten()  # y - x

    ordered = np.zeros((4, 2), dtype=np.float64)
    ordered[0] = pts[np.argmin(s)]   # top-left
    ordered[1] = pts[np.argmin(d)]   # top-right
    ordered[2] = pts[np.argmax(s)]   # bottom-right
    ordered[3] = pts[np.argmax(d)]   # bottom-left

    return ordered


class CornerSet:
    """Four ordered corners bound to an image's natural size.

    Every stored point is clamped to the image bounds on construction, so
    the clamp invariant holds for any instance regardless of how it was made.
    Instances are treated as values: every edit returns a new ``CornerSet``.
    """

    __slots__ = ("_points", "image_width", "image_height")

    def __init__(
        self,
        points: Union[np.ndarray, Sequence[PointLike]],
        image_width: float,
        image_height: float,
    ) -> None:
        pts = np.array(points, dtype=np.float64).reshape(-1, 2)
        if pts.shape[0] != 4:
            raise ValueError(f"A corner set needs exactly 4 points, got {pts.shape[0]}")
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Invalid image size {image_width}x{image_height}")

        pts[:, 0] = np.clip(pts[:, 0], 0.0, float(image_width))
        pts[:, 1] = np.clip(pts[:, 1], 0.0, float(image_height))

        self._points = pts
        self.image_width = float(image_width)
        self.image_height = float(image_height)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------
    @classmethod
    def from_points(
        cls,
        points: Union[np.ndarray, Sequence[PointLike]],
        image_width: float,
        image_height: float,
        sort: bool = False,
    ) -> "CornerSet":
        """Build a corner set, optionally sorting the points into canonical order."""
        pts = sort_canonical(points) if sort else points
        return cls(pts, image_width, image_height)

    @classmethod
    def from_rect(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        image_width: float,
        image_height: float,
    ) -> "CornerSet":
        """Express an axis-aligned crop rectangle as a corner set.

        Negative width or height (a rectangle dragged up or left) is
        normalized first.
        """
        if width < 0:
            x, width = x + width, -width
        if height < 0:
            y, height = y + height, -height

        return cls(
            [
                [x, y],
                [x + width, y],
                [x + width, y + height],
                [x, y + height],
            ],
            image_width,
            image_height,
        )

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------
    def __len__(self) -> int:
        return 4

    def __getitem__(self, index: int) -> Point:
        x, y = self._points[index]
        return Point(float(x), float(y))

    def __iter__(self):
        for i in range(4):
            yield self[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CornerSet):
            return NotImplemented
        return (
            self.image_width == other.image_width
            and self.image_height == other.image_height
            and np.array_equal(self._points, other._points)
        )

    def __repr__(self) -> str:
        pts = ", ".join(f"({x:.1f}, {y:.1f})" for x, y in self._points)
        return f"CornerSet([{pts}], {self.image_width:g}x{self.image_height:g})"

    def corner(self, index: int) -> Point:
        return self[index % 4]

    def midpoint(self, index: int) -> Point:
        """Midpoint of edge ``index`` (between corner ``index`` and ``index + 1``)."""
        a = self._points[index % 4]
        b = self._points[(index + 1) % 4]
        return Point(float((a[0] + b[0]) / 2), float((a[1] + b[1]) / 2))

    def midpoints(self) -> List[Point]:
        return [self.midpoint(i) for i in range(4)]

    def as_array(self) -> np.ndarray:
        """Copy of the points as a float64 (4, 2) array."""
        return self._points.copy()

    def copy(self) -> "CornerSet":
        return CornerSet(self._points, self.image_width, self.image_height)

    def to_list(self) -> List[List[float]]:
        return [[float(x), float(y)] for x, y in self._points]

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------
    def with_corner(self, index: int, point: PointLike) -> "CornerSet":
        """Return a copy with corner ``index`` moved (and clamped) to ``point``."""
        pts = self._points.copy()
        pts[index % 4] = clamp(point, self.image_width, self.image_height)
        return CornerSet(pts, self.image_width, self.image_height)

    def translate_corner(self, index: int, dx: float, dy: float) -> "CornerSet":
        x, y = self._points[index % 4]
        return self.with_corner(index, (x + dx, y + dy))

    def translate_edge(self, index: int, dx: float, dy: float) -> "CornerSet":
        """Move both endpoints of edge ``index`` by the same delta.

        Each endpoint is clamped on its own, so near an image border the
        edge can bend instead of translating as a whole.
        """
        i, j = index % 4, (index + 1) % 4
        pts = self._points.copy()
        pts[i] = clamp(pts[i] + (dx, dy), self.image_width, self.image_height)
        pts[j] = clamp(pts[j] + (dx, dy), self.image_width, self.image_height)
        return CornerSet(pts, self.image_width, self.image_height)

    # -------------------------------------------------------------------------
    # Geometry helpers
    # -------------------------------------------------------------------------
    def is_axis_aligned(self, tolerance: float = 1e-6) -> bool:
        tl, tr, br, bl = self._points
        return (
            abs(tl[1] - tr[1]) <= tolerance
            and abs(bl[1] - br[1]) <= tolerance
            and abs(tl[0] - bl[0]) <= tolerance
            and abs(tr[0] - br[0]) <= tolerance
        )

    def bounding_rect(self) -> Tuple[float, float, float, float]:
        """Axis-aligned bounding box as ``(x, y, width, height)``."""
        x0, y0 = self._points.min(axis=0)
        x1, y1 = self._points.max(axis=0)
        return float(x0), float(y0), float(x1 - x0), float(y1 - y0)

    def area(self) -> float:
        """Signed shoelace area; positive for clockwise order in y-down coordinates."""
        x = self._points[:, 0]
        y = self._points[:, 1]
        return float(0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def init_default(
    image_width: float,
    image_height: float,
    inset: float = 0.1,
) -> CornerSet:
    """Default corner set: a rectangle inset by ``inset`` of each dimension.

    Args:
        image_width: Natural image width in pixels.
        image_height: Natural image height in pixels.
        inset: Fraction of each dimension to leave on every side.

    Returns:
        CornerSet ``TL=(0.1w, 0.1h), TR=(0.9w, 0.1h), BR=(0.9w, 0.9h), BL=(0.1w, 0.9h)``
        for the default inset.
    """
    x0, x1 = image_width * inset, image_width * (1.0 - inset)
    y0, y1 = image_height * inset, image_height * (1.0 - inset)
    corners = CornerSet([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], image_width, image_height)
    logger.debug(f"Default corner set for {image_width}x{image_height}: {corners}")
    return corners
