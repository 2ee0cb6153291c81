from __future__ import annotations

from pygame.math import Vector2

from .collision import CollisionWorld
from .rng import DeterministicRng


class Food:
    def __init__(self, handle: int, size: float):
        self.handle = handle
        self.size = size

    def update(self, world: CollisionWorld, rng: DeterministicRng) -> bool:
        """Relocate the food if it was eaten this tick."""
        data = world.data(self.handle)
        if not data.eaten:
            return False
        data.eaten = False
        world.set_position(self.handle, rng.random_coordinate())
        return True


class Wall:
    def __init__(self, handle: int, first: Vector2, second: Vector2):
        self.handle = handle
        self.first = Vector2(first)
        self.second = Vector2(second)
