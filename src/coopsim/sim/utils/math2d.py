from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

Point = Tuple[float, float]

_PARALLEL_EPSILON = 1e-12


def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def _point_segment_distance(px: float, py: float, a: Point, b: Point) -> float:
    ax, ay = a
    bx, by = b
    ex = bx - ax
    ey = by - ay
    length_sq = ex * ex + ey * ey
    if length_sq <= 0.0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * ex + (py - ay) * ey) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + ex * t), py - (ay + ey * t))


def _edges(vertices: Sequence[Point]):
    count = len(vertices)
    if count == 2:
        yield vertices[0], vertices[1]
        return
    for i in range(count):
        yield vertices[i], vertices[(i + 1) % count]


def _point_in_convex(px: float, py: float, vertices: Sequence[Point]) -> bool:
    """Inclusive containment test; segments never contain points."""
    if len(vertices) < 3:
        return False
    sign = 0
    for (ax, ay), (bx, by) in _edges(vertices):
        side = _cross(bx - ax, by - ay, px - ax, py - ay)
        if side == 0.0:
            continue
        current = 1 if side > 0 else -1
        if sign == 0:
            sign = current
        elif current != sign:
            return False
    return True


def _segments_intersect(a: Point, b: Point, c: Point, d: Point) -> bool:
    d1 = _cross(b[0] - a[0], b[1] - a[1], c[0] - a[0], c[1] - a[1])
    d2 = _cross(b[0] - a[0], b[1] - a[1], d[0] - a[0], d[1] - a[1])
    d3 = _cross(d[0] - c[0], d[1] - c[1], a[0] - c[0], a[1] - c[1])
    d4 = _cross(d[0] - c[0], d[1] - c[1], b[0] - c[0], b[1] - c[1])
    if ((d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)) and ((d3 > 0 and d4 < 0) or (d3 < 0 and d4 > 0)):
        return True
    if d1 == 0 and _point_segment_distance(c[0], c[1], a, b) == 0.0:
        return True
    if d2 == 0 and _point_segment_distance(d[0], d[1], a, b) == 0.0:
        return True
    if d3 == 0 and _point_segment_distance(a[0], a[1], c, d) == 0.0:
        return True
    if d4 == 0 and _point_segment_distance(b[0], b[1], c, d) == 0.0:
        return True
    return False


def _point_hull_distance(px: float, py: float, vertices: Sequence[Point]) -> float:
    if _point_in_convex(px, py, vertices):
        return 0.0
    return min(_point_segment_distance(px, py, a, b) for a, b in _edges(vertices))


def _hull_hull_distance(first: Sequence[Point], second: Sequence[Point]) -> float:
    for a, b in _edges(first):
        for c, d in _edges(second):
            if _segments_intersect(a, b, c, d):
                return 0.0
    if _point_in_convex(first[0][0], first[0][1], second) or _point_in_convex(
        second[0][0], second[0][1], first
    ):
        return 0.0
    best = math.inf
    for px, py in first:
        for a, b in _edges(second):
            best = min(best, _point_segment_distance(px, py, a, b))
    for px, py in second:
        for a, b in _edges(first):
            best = min(best, _point_segment_distance(px, py, a, b))
    return best


def _ray_segment_toi(ox: float, oy: float, dx: float, dy: float, a: Point, b: Point) -> Optional[float]:
    sx = b[0] - a[0]
    sy = b[1] - a[1]
    denom = _cross(dx, dy, sx, sy)
    if abs(denom) < _PARALLEL_EPSILON:
        return None
    qx = a[0] - ox
    qy = a[1] - oy
    t = _cross(qx, qy, sx, sy) / denom
    u = _cross(qx, qy, dx, dy) / denom
    if t < 0.0 or u < 0.0 or u > 1.0:
        return None
    return t


def _ray_circle_toi(ox: float, oy: float, dx: float, dy: float, cx: float, cy: float, radius: float) -> Optional[float]:
    mx = ox - cx
    my = oy - cy
    c = mx * mx + my * my - radius * radius
    if c <= 0.0:
        return 0.0
    b = mx * dx + my * dy
    if b > 0.0:
        return None
    discriminant = b * b - c
    if discriminant < 0.0:
        return None
    return -b - math.sqrt(discriminant)


def _ray_hull_toi(ox: float, oy: float, dx: float, dy: float, vertices: Sequence[Point]) -> Optional[float]:
    if _point_in_convex(ox, oy, vertices):
        return 0.0
    best: Optional[float] = None
    for a, b in _edges(vertices):
        toi = _ray_segment_toi(ox, oy, dx, dy, a, b)
        if toi is not None and (best is None or toi < best):
            best = toi
    return best
