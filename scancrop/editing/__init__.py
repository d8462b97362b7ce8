"""Interactive corner editing: coordinate mapping, hit-testing and dragging."""

from scancrop.editing.coords import CoordinateMapper, ElementBox, ViewTransform
from scancrop.editing.corners import CornerSet, Point, clamp, init_default, sort_canonical
from scancrop.editing.drag import DragController
from scancrop.editing.hit_test import DragTarget, hit_test

__all__ = [
    "CoordinateMapper",
    "ElementBox",
    "ViewTransform",
    "CornerSet",
    "Point",
    "clamp",
    "init_default",
    "sort_canonical",
    "DragController",
    "DragTarget",
    "hit_test",
]
