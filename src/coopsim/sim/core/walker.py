from __future__ import annotations

import math
from typing import List, Optional, Tuple

from pygame.math import Vector2

from .brain import Brain, BrainNetwork, Reading
from .collision import CollisionWorld, diamond_points
from .entity import CARNIVORE_RAY_GROUPS, HERBIVORE_RAY_GROUPS, Entity

MAX_HEALTH = 2500
# Rays start slightly outside the body so they never hit their own walker.
RAY_OFFSET = 0.1

_DIAGONAL = math.sqrt(0.5)

# Unit movement per facing; 0 points up the screen and facings turn clockwise.
FACING_DIRECTIONS: Tuple[Tuple[float, float], ...] = (
    (0.0, -1.0),
    (_DIAGONAL, -_DIAGONAL),
    (1.0, 0.0),
    (_DIAGONAL, _DIAGONAL),
    (0.0, 1.0),
    (-_DIAGONAL, _DIAGONAL),
    (-1.0, 0.0),
    (-_DIAGONAL, -_DIAGONAL),
)


def sensor_points(size: float) -> List[Tuple[float, float]]:
    """Body corners interleaved with edge midpoints, one per facing."""
    corners = diamond_points(size)
    points = []
    for i, (x1, y1) in enumerate(corners):
        x2, y2 = corners[(i + 1) % len(corners)]
        points.append((x1, y1))
        points.append(((x1 + x2) / 2.0, (y1 + y2) / 2.0))
    return points


class RandomWalker:
    """A herbivore or carnivore driven by a `Brain`.

    Health and score live in the collision body's `BodyData`; the walker keeps
    a copy for ranking and telemetry and writes its own changes back.
    """

    def __init__(
        self,
        handle: int,
        alliance_handle: Optional[int],
        id: int,
        size: float,
        speed: float,
        health: int,
        entity: Entity,
        thinking_time: int,
        view_range: float,
        mutation_rate: float,
        seed: int,
    ):
        self.id = id
        self.size = size
        self.speed = speed
        self.entity = entity
        self.facing = 1
        self.thinking_time = thinking_time
        self.thinking = thinking_time
        self.initial_health = health
        self.health = health
        self.score = 0
        self._handle = handle
        self._alliance_handle = alliance_handle
        self._brain = Brain(view_range, mutation_rate, seed)
        self._last_translation = Vector2()
        self._sensor_points = sensor_points(size)
        self._rays: List[Tuple[Vector2, Vector2]] = []

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def alliance_handle(self) -> Optional[int]:
        return self._alliance_handle

    @property
    def brain(self) -> Brain:
        return self._brain

    @property
    def rays(self) -> List[Tuple[Vector2, Vector2]]:
        return self._rays

    @property
    def last_translation(self) -> Vector2:
        return Vector2(self._last_translation)

    def get_brain(self) -> BrainNetwork:
        return self._brain.networks()

    def position(self, world: CollisionWorld) -> Vector2:
        return world.position(self._handle)

    def sense(self, world: CollisionWorld) -> List[Reading]:
        """Refresh ray geometry and, when the thinking countdown allows, cast the rays."""
        position = world.position(self._handle)
        groups = HERBIVORE_RAY_GROUPS if self.entity == Entity.HERBIVORE else CARNIVORE_RAY_GROUPS
        thinking = self.thinking >= self.thinking_time
        readings: List[Reading] = []
        self._rays = []
        for x, y in self._sensor_points:
            origin = position + Vector2(x, y)
            direction = Vector2(x, y).normalize()
            self._rays.append((origin, direction))
            if thinking:
                hit = world.cast_ray(origin + direction * RAY_OFFSET, direction, self._brain.view_range, groups)
                readings.append(None if hit is None else (hit.entity, hit.toi))
        if thinking:
            self.thinking = 0
        return readings

    def update(self, world: CollisionWorld) -> None:
        readings = self.sense(world)
        if readings:
            self.facing = self._brain.get_new_direction(readings, self.entity, self.facing)
            dx, dy = FACING_DIRECTIONS[self.facing]
            self._last_translation = Vector2(dx * self.speed, dy * self.speed)
        new_position = world.translate(self._handle, self._last_translation)
        if self._alliance_handle is not None:
            world.set_position(self._alliance_handle, new_position)
        self.thinking += 1

        data = world.data(self._handle)
        self.health = data.energy
        if self.health > MAX_HEALTH:
            self.health = MAX_HEALTH
            data.energy = MAX_HEALTH
        else:
            data.energy = self.health - 1
        # One point per survived tick plus whatever the resolver credited.
        self.score += 1 + data.fitness
        data.fitness = 0
        data.score = self.score

    def is_dead(self, world: CollisionWorld) -> bool:
        data = world.data(self._handle)
        return data.eaten or data.energy <= 0

    def respawn(self, world: CollisionWorld, position: Vector2, mutate: bool, networks: BrainNetwork) -> None:
        data = world.data(self._handle)
        data.eaten = False
        data.energy = self.initial_health
        data.fitness = 0
        data.score = 0
        self.health = self.initial_health
        world.set_position(self._handle, position)
        if self._alliance_handle is not None:
            world.set_position(self._alliance_handle, position)
        self._brain.set_networks(networks)
        if mutate:
            self._brain.mutate()
        self.thinking = self.thinking_time
        self.score = 0
