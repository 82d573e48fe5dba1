"""Labeled CVAT shapes and their rasterization onto binary masks.

The set of shape kinds is closed: every geometry is one of the dataclasses
below and ``draw_mask`` dispatches over them exhaustively. Shapes the loader
does not understand become ``Unsupported`` and draw nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence, Tuple, Union

import cv2  # type: ignore
import numpy as np

from cvatmask.core.errors import AggregationError
from cvatmask.pipeline.points import Point

FOREGROUND = 255

logger = logging.getLogger(__name__)


class GeometryKind(str, Enum):
    BOX = "box"
    POLYGON = "polygon"
    POLYLINE = "polyline"
    POINTS = "points"
    ELLIPSE = "ellipse"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, kw_only=True)
class _Shape:
    label: str
    group: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class Box(_Shape):
    kind: ClassVar[GeometryKind] = GeometryKind.BOX
    xtl: int
    ytl: int
    xbr: int
    ybr: int


@dataclass(frozen=True, kw_only=True)
class Polygon(_Shape):
    kind: ClassVar[GeometryKind] = GeometryKind.POLYGON
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True, kw_only=True)
class Polyline(_Shape):
    kind: ClassVar[GeometryKind] = GeometryKind.POLYLINE
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True, kw_only=True)
class PointSet(_Shape):
    kind: ClassVar[GeometryKind] = GeometryKind.POINTS
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True, kw_only=True)
class Ellipse(_Shape):
    kind: ClassVar[GeometryKind] = GeometryKind.ELLIPSE
    cx: int
    cy: int
    rx: int
    ry: int
    rotation: float = 0.0


@dataclass(frozen=True, kw_only=True)
class Unsupported(_Shape):
    """A shape element of a kind that is not rasterized (mask, skeleton, cuboid, ...)."""

    kind: ClassVar[GeometryKind] = GeometryKind.UNSUPPORTED
    tag: str


Geometry = Union[Box, Polygon, Polyline, PointSet, Ellipse, Unsupported]


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def _as_contour(points: Sequence[Point], lo: int, hi: int) -> np.ndarray:
    clamped = [(_clamp(p.x, lo, hi), _clamp(p.y, lo, hi)) for p in points]
    return np.array(clamped, dtype=np.int32).reshape((-1, 1, 2))


def draw_mask(geometry: Geometry, mask: np.ndarray, *, normalize_boxes: bool = False) -> None:
    """Set every pixel covered by ``geometry`` to 255 in ``mask``.

    Pixels outside the geometry are left untouched. Coordinates are clamped to
    one canvas size beyond each edge before reaching OpenCV, which keeps
    arbitrarily large values inside its drawing range; boxes and points are
    unaffected by this, while polygon vertices and ellipses that far out are
    approximated.

    Args:
        geometry: shape to rasterize.
        mask: single-channel uint8 buffer, modified in place.
        normalize_boxes: swap inverted box corners instead of drawing nothing.
    """
    if mask.ndim != 2 or mask.dtype != np.uint8:
        raise AggregationError(f"expected a 2-D uint8 mask, got shape {mask.shape} dtype {mask.dtype}")
    if mask.size == 0:
        return
    # Everything drawn lies in [lo, hi]; the canvas is [0, bound)
    bound = max(mask.shape)
    lo, hi = -bound, 2 * bound

    if isinstance(geometry, Box):
        xtl, ytl, xbr, ybr = geometry.xtl, geometry.ytl, geometry.xbr, geometry.ybr
        if normalize_boxes:
            xtl, xbr = min(xtl, xbr), max(xtl, xbr)
            ytl, ybr = min(ytl, ybr), max(ytl, ybr)
        xtl, ytl, xbr, ybr = (_clamp(v, lo, hi) for v in (xtl, ytl, xbr, ybr))
        # Rect semantics: [xtl, xbr) x [ytl, ybr); a non-positive extent is empty
        if xbr <= xtl or ybr <= ytl:
            return
        cv2.rectangle(mask, (xtl, ytl), (xbr - 1, ybr - 1), FOREGROUND, thickness=cv2.FILLED)
    elif isinstance(geometry, Polygon):
        if geometry.points:
            cv2.fillPoly(mask, [_as_contour(geometry.points, lo, hi)], FOREGROUND)
    elif isinstance(geometry, Polyline):
        if geometry.points:
            cv2.polylines(mask, [_as_contour(geometry.points, lo, hi)], False, FOREGROUND, thickness=1)
    elif isinstance(geometry, PointSet):
        height, width = mask.shape
        for point in geometry.points:
            if 0 <= point.x < width and 0 <= point.y < height:
                cv2.circle(mask, (point.x, point.y), 0, FOREGROUND, thickness=cv2.FILLED)
    elif isinstance(geometry, Ellipse):
        cv2.ellipse(
            mask,
            (_clamp(geometry.cx, lo, hi), _clamp(geometry.cy, lo, hi)),
            (_clamp(geometry.rx, 0, hi - lo), _clamp(geometry.ry, 0, hi - lo)),
            geometry.rotation,
            0,
            360,
            FOREGROUND,
            thickness=cv2.FILLED,
        )
    else:
        logger.debug("geometry_skipped", extra={"tag": getattr(geometry, "tag", None), "label": geometry.label})
