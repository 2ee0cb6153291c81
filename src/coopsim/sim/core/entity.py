from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable


class Entity(str, Enum):
    FOOD = "FOOD"
    HERBIVORE = "HERBIVORE"
    CARNIVORE = "CARNIVORE"
    WALL = "WALL"
    OTHER = "OTHER"

    def __str__(self) -> str:
        return self.value


class CollisionGroup(IntEnum):
    FOOD = 1
    HERBIVORE = 2
    CARNIVORE = 3
    HERBIVORE_RAY = 4
    WALL = 5
    CARNIVORE_RAY = 6
    CARNIVORE_ALLIANCE = 7


class GroupSet:
    """Immutable bitset over the seven collision groups."""

    __slots__ = ("_bits",)

    def __init__(self, groups: Iterable[CollisionGroup] = ()) -> None:
        bits = 0
        for group in groups:
            bits |= 1 << CollisionGroup(group).value
        self._bits = bits

    @property
    def bits(self) -> int:
        return self._bits

    def __contains__(self, group: CollisionGroup) -> bool:
        return bool(self._bits & (1 << CollisionGroup(group).value))

    def intersects(self, other: "GroupSet") -> bool:
        return bool(self._bits & other._bits)

    def __iter__(self):
        return (group for group in CollisionGroup if group in self)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, GroupSet) and other._bits == self._bits

    def __hash__(self) -> int:
        return hash(self._bits)

    def __repr__(self) -> str:
        return f"GroupSet({[group.name for group in self]})"


@dataclass(frozen=True)
class CollisionGroups:
    membership: GroupSet
    whitelist: GroupSet
    blacklist: GroupSet

    @classmethod
    def of(
        cls,
        membership: Iterable[CollisionGroup],
        whitelist: Iterable[CollisionGroup],
        blacklist: Iterable[CollisionGroup],
    ) -> "CollisionGroups":
        return cls(GroupSet(membership), GroupSet(whitelist), GroupSet(blacklist))

    def can_interact_with(self, other: "CollisionGroups") -> bool:
        return (
            self.membership.intersects(other.whitelist)
            and other.membership.intersects(self.whitelist)
            and not self.membership.intersects(other.blacklist)
            and not other.membership.intersects(self.blacklist)
        )


G = CollisionGroup

FOOD_GROUPS = CollisionGroups.of(
    [G.FOOD],
    [G.HERBIVORE, G.HERBIVORE_RAY],
    [G.FOOD, G.CARNIVORE, G.WALL, G.CARNIVORE_RAY, G.CARNIVORE_ALLIANCE],
)
HERBIVORE_GROUPS = CollisionGroups.of(
    [G.HERBIVORE],
    [G.FOOD, G.CARNIVORE, G.WALL, G.CARNIVORE_RAY],
    [G.HERBIVORE, G.HERBIVORE_RAY, G.CARNIVORE_ALLIANCE],
)
CARNIVORE_GROUPS = CollisionGroups.of(
    [G.CARNIVORE],
    [G.HERBIVORE, G.HERBIVORE_RAY, G.WALL, G.CARNIVORE_RAY, G.CARNIVORE_ALLIANCE],
    [G.FOOD, G.CARNIVORE],
)
WALL_GROUPS = CollisionGroups.of(
    [G.WALL],
    [G.HERBIVORE, G.CARNIVORE, G.HERBIVORE_RAY, G.CARNIVORE_RAY],
    [G.FOOD, G.WALL, G.CARNIVORE_ALLIANCE],
)
ALLIANCE_GROUPS = CollisionGroups.of(
    [G.CARNIVORE_ALLIANCE],
    [G.CARNIVORE],
    [G.FOOD, G.HERBIVORE, G.HERBIVORE_RAY, G.WALL, G.CARNIVORE_RAY, G.CARNIVORE_ALLIANCE],
)
HERBIVORE_RAY_GROUPS = CollisionGroups.of(
    [G.HERBIVORE_RAY],
    [G.FOOD, G.CARNIVORE, G.WALL],
    [G.HERBIVORE, G.HERBIVORE_RAY, G.CARNIVORE_RAY, G.CARNIVORE_ALLIANCE],
)
CARNIVORE_RAY_GROUPS = CollisionGroups.of(
    [G.CARNIVORE_RAY],
    [G.HERBIVORE, G.CARNIVORE, G.WALL],
    [G.FOOD, G.HERBIVORE_RAY, G.CARNIVORE_RAY, G.CARNIVORE_ALLIANCE],
)

del G
