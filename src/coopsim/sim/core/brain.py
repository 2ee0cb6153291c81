from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from .entity import Entity
from .rng import DeterministicRng

INPUTS = 5
HIDDEN = 7
OUTPUTS = 3
RAYS = 8
DIRECTIONS = 8

# Ray indices of the forward cone (facing -2 .. facing +2) for each facing.
FORWARD_CONE: Tuple[Tuple[int, int, int, int, int], ...] = (
    (6, 7, 0, 1, 2),
    (7, 0, 1, 2, 3),
    (0, 1, 2, 3, 4),
    (1, 2, 3, 4, 5),
    (2, 3, 4, 5, 6),
    (3, 4, 5, 6, 7),
    (4, 5, 6, 7, 0),
    (5, 6, 7, 0, 1),
)

# Facing after choosing output 0 (turn left), 1 (keep going) or 2 (turn right).
TURNS: Tuple[Tuple[int, int, int], ...] = (
    (7, 0, 1),
    (0, 1, 2),
    (1, 2, 3),
    (2, 3, 4),
    (3, 4, 5),
    (4, 5, 6),
    (5, 6, 7),
    (6, 7, 0),
)

Reading = Optional[Tuple[Entity, float]]

_SLOT_THREAT = 1
_SLOT_WALL = 2
_SLOT_PROXIMITY = 3
_SLOT_EMPTY = 4


def sigmoid(value):
    """Odd squashing function x / (|x| + 0.5), bounded to (-1, 1)."""
    return value / (np.abs(value) + 0.5)


class InputProcessorNetwork:
    """Two-layer 5 -> 7 -> 3 network processing one sensor category."""

    def __init__(self, seed: int):
        self._rng = DeterministicRng(seed)
        self.layer1 = self._random_layer(HIDDEN, INPUTS)
        self.layer2 = self._random_layer(OUTPUTS, HIDDEN)

    @classmethod
    def from_weights(cls, layer1, layer2, seed: int = 0) -> "InputProcessorNetwork":
        network = cls(seed)
        network.layer1 = np.array(layer1, dtype=float).reshape(HIDDEN, INPUTS)
        network.layer2 = np.array(layer2, dtype=float).reshape(OUTPUTS, HIDDEN)
        return network

    def _random_layer(self, rows: int, cols: int) -> np.ndarray:
        values = [self._rng.next_range(-1.0, 1.0) for _ in range(rows * cols)]
        return np.array(values, dtype=float).reshape(rows, cols)

    def infer(self, inputs: Sequence[float]) -> np.ndarray:
        hidden = sigmoid(self.layer1 @ np.asarray(inputs, dtype=float))
        return sigmoid(self.layer2 @ hidden)

    def mutate(self) -> None:
        # A draw from [0, 2) truncates to 0 or 1: each layer has even odds.
        layer = self._rng.next_index(2.0)
        if layer == 0:
            row = self._rng.next_index(float(HIDDEN))
            col = self._rng.next_index(float(INPUTS))
            self.layer1[row, col] = self._rng.next_range(-1.0, 1.0)
        elif layer == 1:
            row = self._rng.next_index(float(OUTPUTS))
            col = self._rng.next_index(float(HIDDEN))
            self.layer2[row, col] = self._rng.next_range(-1.0, 1.0)

    def copy(self) -> "InputProcessorNetwork":
        clone = InputProcessorNetwork.__new__(InputProcessorNetwork)
        clone._rng = self._rng.copy()
        clone.layer1 = self.layer1.copy()
        clone.layer2 = self.layer2.copy()
        return clone

    def equals(self, other: "InputProcessorNetwork") -> bool:
        return np.array_equal(self.layer1, other.layer1) and np.array_equal(self.layer2, other.layer2)


class BrainNetwork:
    def __init__(self, seed: int):
        self._rng = DeterministicRng(seed)
        self.wall_network = InputProcessorNetwork(seed + 1)
        self.food_network = InputProcessorNetwork(seed + 2)
        self.carnivore_network = InputProcessorNetwork(seed + 3)

    def mutate(self) -> None:
        network = self._rng.next_index(3.0)
        if network == 0:
            self.wall_network.mutate()
        elif network == 1:
            self.food_network.mutate()
        elif network == 2:
            self.carnivore_network.mutate()

    def copy(self) -> "BrainNetwork":
        clone = BrainNetwork.__new__(BrainNetwork)
        clone._rng = self._rng.copy()
        clone.wall_network = self.wall_network.copy()
        clone.food_network = self.food_network.copy()
        clone.carnivore_network = self.carnivore_network.copy()
        return clone

    def equals(self, other: "BrainNetwork") -> bool:
        return (
            self.wall_network.equals(other.wall_network)
            and self.food_network.equals(other.food_network)
            and self.carnivore_network.equals(other.carnivore_network)
        )


class Brain:
    def __init__(self, view_range: float, mutation_rate: float, seed: int):
        self._rng = DeterministicRng(seed)
        self._view_range = view_range
        self._mutation_rate = mutation_rate
        self._network = BrainNetwork(seed + 777)

    @property
    def view_range(self) -> float:
        return self._view_range

    @property
    def mutation_rate(self) -> float:
        return self._mutation_rate

    def networks(self) -> BrainNetwork:
        return self._network.copy()

    def set_networks(self, network: BrainNetwork) -> None:
        self._network = network.copy()

    def mutate(self) -> bool:
        """Mutate one weight when a [0, 1) draw exceeds `mutation_rate`."""
        if self._mutation_rate < self._rng.next_range(0.0, 1.0):
            self._network.mutate()
            return True
        return False

    def encode(self, closest_objects: Sequence[Reading], viewer: Entity) -> list[float]:
        """Flatten the readings into five slots per ray."""
        encoded = [0.0] * (INPUTS * len(closest_objects))
        for ray, reading in enumerate(closest_objects):
            base = ray * INPUTS
            if reading is None:
                encoded[base + _SLOT_EMPTY] = 1.0
                continue
            entity, toi = reading
            if viewer == Entity.HERBIVORE:
                if entity == Entity.FOOD:
                    encoded[base] = 1.0
            elif entity == Entity.HERBIVORE:
                encoded[base] = 1.0
            if entity == Entity.CARNIVORE:
                encoded[base + _SLOT_THREAT] = 1.0
            elif entity == Entity.WALL:
                encoded[base + _SLOT_WALL] = 1.0
            encoded[base + _SLOT_PROXIMITY] = 1.0 - toi / self._view_range
        return encoded

    def relevant_inputs(self, closest_objects: Sequence[Reading], viewer: Entity, facing: int) -> list[list[float]]:
        """Food, carnivore and wall inputs of the forward cone, in that order."""
        encoded = self.encode(closest_objects, viewer)
        rays = len(closest_objects)
        cone = FORWARD_CONE[facing % DIRECTIONS]
        blocks = []
        for slot in (0, _SLOT_THREAT, _SLOT_WALL):
            weighted = [
                encoded[ray * INPUTS + slot] * encoded[ray * INPUTS + _SLOT_PROXIMITY] for ray in range(rays)
            ]
            blocks.append([weighted[ray] for ray in cone])
        return blocks

    def get_new_direction(self, closest_objects: Sequence[Reading], viewer: Entity, facing: int) -> int:
        food_inputs, carnivore_inputs, wall_inputs = self.relevant_inputs(closest_objects, viewer, facing)
        network = self._network
        totals = (
            network.food_network.infer(food_inputs)
            + network.carnivore_network.infer(carnivore_inputs)
            + network.wall_network.infer(wall_inputs)
        )
        best = 1
        for index in range(OUTPUTS):
            if totals[index] > totals[best]:
                best = index
        return TURNS[facing % DIRECTIONS][best]
