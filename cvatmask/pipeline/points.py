from __future__ import annotations

import math
from typing import List, NamedTuple

from cvatmask.core.errors import GeometryParseError


class Point(NamedTuple):
    x: int
    y: int


def parse_int(text: str) -> int:
    """Parse a CVAT numeric attribute and truncate it toward zero.

    CVAT writes coordinates with two decimals (``"10.50"``); only the integer
    part is used for rasterization.
    """
    token = text.strip()
    if not token:
        raise GeometryParseError(text, "empty number")
    try:
        value = float(token)
    except ValueError:
        raise GeometryParseError(text, "not a number") from None
    if not math.isfinite(value):
        raise GeometryParseError(text, "not a finite number")
    return int(value)


def parse_points(text: str) -> List[Point]:
    """Parse a ``"x1,y1;x2,y2;..."`` point list into integer points.

    A single trailing ``;`` is accepted. Any other empty pair, a pair without
    a comma, or a non-numeric coordinate raises GeometryParseError naming the
    offending pair.
    """
    if not text or not text.strip():
        raise GeometryParseError(text, "empty point list")

    pairs = text.split(";")
    if pairs[-1].strip() == "":
        pairs.pop()

    points: List[Point] = []
    for pair in pairs:
        x_text, sep, y_text = pair.partition(",")
        if not sep:
            raise GeometryParseError(pair, "point is missing ','")
        try:
            points.append(Point(parse_int(x_text), parse_int(y_text)))
        except GeometryParseError as exc:
            raise GeometryParseError(pair, f"malformed point ({exc.reason})") from exc
    return points
