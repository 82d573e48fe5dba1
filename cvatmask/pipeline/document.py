"""CVAT for images 1.1 XML annotations loaded into immutable records.

Only the parts needed for rasterization are read: the declared label names
under ``meta/task`` (or ``meta/project`` for project exports) and every
``image`` element with its shape children.
"""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from cvatmask.core.errors import DocumentLoadError, GeometryParseError
from cvatmask.pipeline.geometry import Box, Ellipse, Geometry, PointSet, Polygon, Polyline, Unsupported
from cvatmask.pipeline.image import ImageRecord
from cvatmask.pipeline.points import parse_int, parse_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    labels: Tuple[str, ...]
    images: Tuple[ImageRecord, ...]
    source: Optional[Path] = None

    @classmethod
    def from_file(cls, path: str | Path, *, normalize_boxes: bool = False) -> "Document":
        return load_document(path, normalize_boxes=normalize_boxes)

    def filenames(self) -> List[str]:
        return [image.name for image in self.images]

    def image(self, filename: str) -> ImageRecord:
        for image in self.images:
            if image.name == filename:
                return image
        raise KeyError(filename)

    def labels_for(self, filename: str) -> List[str]:
        return self.image(filename).labels()

    def masks_for(self, filename: str, label: str) -> List[np.ndarray]:
        return self.image(filename).mask(label)


def _required(element: ET.Element, attr: str) -> str:
    value = element.get(attr)
    if value is None:
        raise GeometryParseError("", f"missing attribute {attr!r}")
    return value


def _int_attr(element: ET.Element, attr: str) -> int:
    return parse_int(_required(element, attr))


def _group(element: ET.Element) -> Optional[int]:
    raw = element.get("group_id")
    if raw is None:
        return None
    group = parse_int(raw)
    if group < 0:
        raise GeometryParseError(raw, "group_id must not be negative")
    return group


def _box(element: ET.Element, label: str, group: Optional[int]) -> Geometry:
    return Box(
        label=label,
        group=group,
        xtl=_int_attr(element, "xtl"),
        ytl=_int_attr(element, "ytl"),
        xbr=_int_attr(element, "xbr"),
        ybr=_int_attr(element, "ybr"),
    )


def _polygon(element: ET.Element, label: str, group: Optional[int]) -> Geometry:
    return Polygon(label=label, group=group, points=tuple(parse_points(_required(element, "points"))))


def _polyline(element: ET.Element, label: str, group: Optional[int]) -> Geometry:
    return Polyline(label=label, group=group, points=tuple(parse_points(_required(element, "points"))))


def _point_set(element: ET.Element, label: str, group: Optional[int]) -> Geometry:
    return PointSet(label=label, group=group, points=tuple(parse_points(_required(element, "points"))))


def _ellipse(element: ET.Element, label: str, group: Optional[int]) -> Geometry:
    rx = _int_attr(element, "rx")
    ry = _int_attr(element, "ry")
    if rx < 0 or ry < 0:
        raise GeometryParseError(f"{rx},{ry}", "ellipse radii must not be negative")
    rotation = element.get("rotation")
    if rotation is None:
        angle = 0.0
    else:
        try:
            angle = float(rotation)
        except ValueError:
            raise GeometryParseError(rotation, "rotation is not a number") from None
        if not math.isfinite(angle):
            raise GeometryParseError(rotation, "rotation is not a finite number")
    return Ellipse(
        label=label,
        group=group,
        cx=_int_attr(element, "cx"),
        cy=_int_attr(element, "cy"),
        rx=rx,
        ry=ry,
        rotation=angle,
    )


_SHAPE_PARSERS: Dict[str, Callable[[ET.Element, str, Optional[int]], Geometry]] = {
    "box": _box,
    "polygon": _polygon,
    "polyline": _polyline,
    "points": _point_set,
    "ellipse": _ellipse,
}


def parse_geometry(element: ET.Element) -> Geometry:
    """Build the geometry for one shape element of an ``image``."""
    label = element.get("label") or ""
    group = _group(element)
    parser = _SHAPE_PARSERS.get(element.tag)
    if parser is None:
        return Unsupported(label=label, group=group, tag=element.tag)
    return parser(element, label, group)


def _image_dimension(element: ET.Element, attr: str, path: Path) -> int:
    raw = element.get(attr)
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise DocumentLoadError(path, f"image {element.get('name')!r} has invalid {attr} {raw!r}") from None
    if value < 0:
        raise DocumentLoadError(path, f"image {element.get('name')!r} has negative {attr} {value}")
    return value


def _declared_labels(root: ET.Element, path: Path) -> Tuple[str, ...]:
    container = root.find("meta/task/labels")
    if container is None:
        container = root.find("meta/project/labels")
    if container is None:
        return ()

    labels: List[str] = []
    for node in container.findall("label"):
        name = (node.findtext("name") or "").strip()
        if not name:
            raise DocumentLoadError(path, "declared label without a name")
        labels.append(name)
    return tuple(labels)


def _parse_image(element: ET.Element, path: Path, normalize_boxes: bool) -> ImageRecord:
    name = element.get("name")
    if not name:
        raise DocumentLoadError(path, f"image with id {element.get('id')!r} has no name")
    width = _image_dimension(element, "width", path)
    height = _image_dimension(element, "height", path)

    geometries: List[Geometry] = []
    for child in element:
        try:
            geometries.append(parse_geometry(child))
        except GeometryParseError as exc:
            raise GeometryParseError(exc.text, f"image {name!r}, <{child.tag}>: {exc.reason}") from exc

    return ImageRecord(
        name=name,
        width=width,
        height=height,
        geometries=tuple(geometries),
        normalize_boxes=normalize_boxes,
    )


def load_document(path: str | Path, *, normalize_boxes: bool = False) -> Document:
    """Read and fully parse a CVAT XML annotation file.

    Raises:
        DocumentLoadError: the file is missing, unreadable, not XML, or not a
            CVAT ``annotations`` document.
        GeometryParseError: a shape carries a malformed coordinate attribute.
    """
    path = Path(path)
    if not path.is_file():
        raise DocumentLoadError(path, "file not found")
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise DocumentLoadError(path, f"malformed XML ({exc})") from exc
    except OSError as exc:
        raise DocumentLoadError(path, str(exc)) from exc

    if root.tag != "annotations":
        raise DocumentLoadError(path, f"root element is <{root.tag}>, expected <annotations>")

    labels = _declared_labels(root, path)
    images = tuple(_parse_image(node, path, normalize_boxes) for node in root.findall("image"))

    logger.info(
        "document_loaded",
        extra={
            "path": str(path),
            "labels": len(labels),
            "images": len(images),
            "geometries": sum(len(image.geometries) for image in images),
        },
    )
    return Document(labels=labels, images=images, source=path)
