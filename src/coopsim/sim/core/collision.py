from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pygame.math import Vector2

from ...errors import SimulationError
from ..utils.math2d import (
    _hull_hull_distance,
    _point_hull_distance,
    _ray_circle_toi,
    _ray_hull_toi,
)
from .entity import CollisionGroups, Entity
from .spatial_grid import Aabb, SpatialGrid

DEFAULT_QUERY_MARGIN = 0.01
DEFAULT_HEALTH = 400


@dataclass(frozen=True)
class Ball:
    radius: float


@dataclass(frozen=True)
class ConvexPolygon:
    points: Tuple[Tuple[float, float], ...]


@dataclass(frozen=True)
class Segment:
    a: Tuple[float, float]
    b: Tuple[float, float]


Shape = Union[Ball, ConvexPolygon, Segment]


class Proximity(str, Enum):
    INTERSECTING = "Intersecting"
    WITHIN_MARGIN = "WithinMargin"
    DISJOINT = "Disjoint"


@dataclass(slots=True)
class BodyData:
    """Side-channel counters shared between an agent and the interaction resolver."""

    entity: Entity
    id: int
    alliance_handle: Optional[int] = None
    fitness: int = 0
    eaten: bool = False
    energy: int = DEFAULT_HEALTH
    score: int = 0


@dataclass(slots=True)
class Body:
    handle: int
    position: Vector2
    shape: Shape
    groups: CollisionGroups
    data: BodyData
    margin: float = DEFAULT_QUERY_MARGIN


@dataclass(frozen=True, slots=True)
class ProximityEvent:
    collider1: int
    collider2: int
    prev_status: Proximity
    new_status: Proximity


@dataclass(frozen=True, slots=True)
class RayHit:
    handle: int
    toi: float
    entity: Entity


class CollisionWorld:
    """Translation-only 2D collision world with group filtering and proximity tracking.

    Bodies never rotate. Pair statuses are refreshed by `update`, which also
    records the status transitions returned by `proximity_events`. Position
    changes are visible to ray casts immediately.
    """

    def __init__(self, cell_size: float = 64.0) -> None:
        self._bodies: Dict[int, Body] = {}
        self._grid = SpatialGrid(cell_size)
        self._next_handle = 0
        self._pairs: Dict[Tuple[int, int], Proximity] = {}
        self._events: List[ProximityEvent] = []
        self._contacts: Dict[int, set[int]] = {}

    def __len__(self) -> int:
        return len(self._bodies)

    def add(
        self,
        position: Vector2,
        shape: Shape,
        groups: CollisionGroups,
        data: BodyData,
        margin: float = DEFAULT_QUERY_MARGIN,
    ) -> int:
        handle = self._next_handle
        self._next_handle += 1
        body = Body(handle=handle, position=Vector2(position), shape=shape, groups=groups, data=data, margin=margin)
        self._bodies[handle] = body
        self._grid.insert(handle, self._aabb(body))
        return handle

    def body(self, handle: int) -> Body:
        try:
            return self._bodies[handle]
        except KeyError:
            raise SimulationError(f"unknown collision body handle {handle}") from None

    def data(self, handle: int) -> BodyData:
        return self.body(handle).data

    def position(self, handle: int) -> Vector2:
        return Vector2(self.body(handle).position)

    def set_position(self, handle: int, position: Vector2) -> None:
        body = self.body(handle)
        body.position.update(position.x, position.y)
        self._grid.move(handle, self._aabb(body))

    def translate(self, handle: int, offset: Vector2) -> Vector2:
        body = self.body(handle)
        body.position.update(body.position.x + offset.x, body.position.y + offset.y)
        self._grid.move(handle, self._aabb(body))
        return Vector2(body.position)

    def update(self) -> None:
        """Refresh every candidate pair status and queue the transitions."""
        self._events.clear()
        bodies = self._bodies
        seen: set[Tuple[int, int]] = set()
        for key in sorted(self._grid.candidate_pairs()):
            first = bodies[key[0]]
            second = bodies[key[1]]
            if not first.groups.can_interact_with(second.groups):
                continue
            seen.add(key)
            self._refresh_pair(key, self._status(first, second))
        for key in [key for key in self._pairs if key not in seen]:
            self._refresh_pair(key, Proximity.DISJOINT)

    def proximity_events(self) -> List[ProximityEvent]:
        return list(self._events)

    def interactions_with(self, handle: int) -> List[int]:
        """Handles currently intersecting `handle`, in ascending order."""
        self.body(handle)
        return sorted(self._contacts.get(handle, ()))

    def cast_ray(
        self, origin: Vector2, direction: Vector2, max_toi: float, groups: CollisionGroups
    ) -> Optional[RayHit]:
        ox, oy = origin.x, origin.y
        dx, dy = direction.x, direction.y
        end_x = ox + dx * max_toi
        end_y = oy + dy * max_toi
        aabb = (min(ox, end_x), min(oy, end_y), max(ox, end_x), max(oy, end_y))
        best: Optional[RayHit] = None
        for handle in sorted(self._grid.query(aabb)):
            body = self._bodies[handle]
            if not groups.can_interact_with(body.groups):
                continue
            toi = self._ray_toi(body, ox, oy, dx, dy)
            if toi is None or toi > max_toi:
                continue
            if best is None or toi < best.toi:
                best = RayHit(handle=handle, toi=toi, entity=body.data.entity)
        return best

    def _refresh_pair(self, key: Tuple[int, int], status: Proximity) -> None:
        previous = self._pairs.get(key, Proximity.DISJOINT)
        if status != previous:
            self._events.append(ProximityEvent(key[0], key[1], previous, status))
        if status == Proximity.INTERSECTING:
            self._contacts.setdefault(key[0], set()).add(key[1])
            self._contacts.setdefault(key[1], set()).add(key[0])
        elif previous == Proximity.INTERSECTING:
            self._contacts.get(key[0], set()).discard(key[1])
            self._contacts.get(key[1], set()).discard(key[0])
        if status == Proximity.DISJOINT:
            self._pairs.pop(key, None)
        else:
            self._pairs[key] = status

    def _status(self, first: Body, second: Body) -> Proximity:
        distance = self._distance(first, second)
        if distance <= 0.0:
            return Proximity.INTERSECTING
        if distance <= first.margin + second.margin:
            return Proximity.WITHIN_MARGIN
        return Proximity.DISJOINT

    def _distance(self, first: Body, second: Body) -> float:
        if isinstance(first.shape, Ball) and isinstance(second.shape, Ball):
            centre_gap = first.position.distance_to(second.position)
            return centre_gap - first.shape.radius - second.shape.radius
        if isinstance(first.shape, Ball):
            first, second = second, first
        if isinstance(second.shape, Ball):
            vertices = self._world_vertices(first)
            gap = _point_hull_distance(second.position.x, second.position.y, vertices)
            return gap - second.shape.radius
        return _hull_hull_distance(self._world_vertices(first), self._world_vertices(second))

    def _ray_toi(self, body: Body, ox: float, oy: float, dx: float, dy: float) -> Optional[float]:
        if isinstance(body.shape, Ball):
            return _ray_circle_toi(ox, oy, dx, dy, body.position.x, body.position.y, body.shape.radius)
        return _ray_hull_toi(ox, oy, dx, dy, self._world_vertices(body))

    @staticmethod
    def _world_vertices(body: Body) -> List[Tuple[float, float]]:
        px, py = body.position.x, body.position.y
        shape = body.shape
        if isinstance(shape, Segment):
            return [(shape.a[0] + px, shape.a[1] + py), (shape.b[0] + px, shape.b[1] + py)]
        if isinstance(shape, ConvexPolygon):
            return [(x + px, y + py) for x, y in shape.points]
        raise SimulationError(f"shape {shape!r} has no vertices")

    @staticmethod
    def _aabb(body: Body) -> Aabb:
        margin = body.margin
        shape = body.shape
        px, py = body.position.x, body.position.y
        if isinstance(shape, Ball):
            extent = shape.radius + margin
            return (px - extent, py - extent, px + extent, py + extent)
        vertices = CollisionWorld._world_vertices(body)
        xs = [x for x, _ in vertices]
        ys = [y for _, y in vertices]
        return (min(xs) - margin, min(ys) - margin, max(xs) + margin, max(ys) + margin)


def diamond_points(size: float) -> Tuple[Tuple[float, float], ...]:
    """Local corners of a walker body: a diamond with arms of size / 3."""
    arm = size / 3.0
    return ((0.0, -arm), (arm, 0.0), (0.0, arm), (-arm, 0.0))

