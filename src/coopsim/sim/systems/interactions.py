from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from pygame.math import Vector2

from ..core.collision import BodyData, CollisionWorld, Proximity, ProximityEvent
from ..core.entity import Entity


@dataclass(frozen=True, slots=True)
class InteractionRules:
    food_nutrition: int
    herbivore_nutrition: int
    threshold_herbivore_score: int
    sharing_fraction_1: float
    sharing_fraction_2: float
    # Carnivore ids at or above this value belong to the second faction.
    faction_2_first_id: int

    def sharing_fraction(self, carnivore_id: int) -> float:
        if carnivore_id >= self.faction_2_first_id:
            return self.sharing_fraction_2
        return self.sharing_fraction_1


@dataclass(frozen=True, slots=True)
class Predation:
    killer_handle: int
    herbivore_handle: int
    bounty: float
    allies: int

    @property
    def party_size(self) -> int:
        return self.allies + 1


@dataclass(frozen=True, slots=True)
class InteractionOutcome:
    first_handle: int
    second_handle: int
    first_id: int
    second_id: int
    first: Entity
    second: Entity
    first_score: int
    second_score: int
    position: Vector2
    predation: Optional[Predation] = None
    food_eaten: bool = False

    @property
    def involves_alliance_zone(self) -> bool:
        return self.first == Entity.OTHER or self.second == Entity.OTHER


def _credit(data: BodyData, amount: int) -> None:
    data.energy += amount
    data.fitness += amount


def resolve_predation(
    world: CollisionWorld, rules: InteractionRules, killer_handle: int, prey_handle: int
) -> Optional[Predation]:
    killer = world.data(killer_handle)
    prey = world.data(prey_handle)
    if prey.entity != Entity.HERBIVORE:
        return None
    prey.eaten = True
    bounty = rules.herbivore_nutrition * (prey.score / rules.threshold_herbivore_score)
    sharing = rules.sharing_fraction(killer.id)
    _credit(killer, int(bounty * (1.0 - sharing)))

    allies: List[BodyData] = []
    if killer.alliance_handle is not None:
        for handle in world.interactions_with(killer.alliance_handle):
            if handle == killer_handle:
                continue
            ally = world.data(handle)
            if ally.entity == Entity.CARNIVORE:
                allies.append(ally)
    if allies:
        share = int(bounty * sharing / len(allies))
        for ally in allies:
            _credit(ally, share)
    else:
        _credit(killer, int(bounty * sharing))
    return Predation(killer_handle, prey_handle, bounty, len(allies))


def _apply(
    world: CollisionWorld, rules: InteractionRules, actor_handle: int, other_handle: int
) -> tuple[Optional[Predation], bool]:
    actor = world.data(actor_handle)
    other = world.data(other_handle)
    if actor.entity == Entity.FOOD:
        actor.eaten = True
        _credit(other, rules.food_nutrition)
        return None, True
    if actor.entity == Entity.WALL:
        other.eaten = True
    elif actor.entity == Entity.CARNIVORE:
        return resolve_predation(world, rules, actor_handle, other_handle), False
    return None, False


def resolve_event(world: CollisionWorld, rules: InteractionRules, event: ProximityEvent) -> InteractionOutcome:
    first, second = event.collider1, event.collider2
    predation, food_first = _apply(world, rules, first, second)
    mirrored, food_second = _apply(world, rules, second, first)
    if mirrored is not None:
        predation = mirrored
    first_data = world.data(first)
    second_data = world.data(second)
    position = world.position(second if first_data.entity == Entity.WALL else first)
    return InteractionOutcome(
        first_handle=first,
        second_handle=second,
        first_id=first_data.id,
        second_id=second_data.id,
        first=first_data.entity,
        second=second_data.entity,
        first_score=first_data.score,
        second_score=second_data.score,
        position=position,
        predation=predation,
        food_eaten=food_first or food_second,
    )


def resolve_proximity_events(
    world: CollisionWorld, rules: InteractionRules, events: Iterable[ProximityEvent]
) -> List[InteractionOutcome]:
    """Apply food, wall and predation rules for every pair that just started intersecting."""
    return [
        resolve_event(world, rules, event) for event in events if event.new_status == Proximity.INTERSECTING
    ]
