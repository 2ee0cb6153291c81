from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from pygame.math import Vector2

from ..core.brain import BrainNetwork
from ..core.collision import CollisionWorld
from ..core.rng import DeterministicRng
from ..core.walker import RandomWalker


@dataclass(slots=True)
class PopulationStats:
    count: int = 0
    pool_size: int = 0
    score_sum: float = 0.0
    health_sum: float = 0.0
    top_score_sum: float = 0.0
    top_health_sum: float = 0.0
    respawns: int = 0

    @property
    def average_score(self) -> float:
        return self.score_sum / self.count if self.count else 0.0

    @property
    def average_health(self) -> float:
        return self.health_sum / self.count if self.count else 0.0

    @property
    def top_average_score(self) -> float:
        return self.top_score_sum / self.pool_size if self.pool_size else 0.0

    @property
    def top_average_health(self) -> float:
        return self.top_health_sum / self.pool_size if self.pool_size else 0.0


@dataclass(slots=True)
class BreedingPlan:
    position: Vector2
    networks: BrainNetwork


def breeding_pool_size(population: int) -> int:
    """Number of top-ranked agents allowed to pass on their networks."""
    return population // 10


def _donor(population: Sequence[RandomWalker], rng: DeterministicRng, pool_size: int) -> RandomWalker:
    # With fewer than ten agents the best-ranked one breeds alone.
    return population[rng.next_index(max(1, pool_size))]


def plan_breeding(
    world: CollisionWorld, population: Sequence[RandomWalker], rng: DeterministicRng, pool_size: int
) -> BreedingPlan:
    """Draw the respawn position and a composite network from the breeding pool.

    The position is pulled two thirds of the way toward a pool member from a
    fresh random coordinate. The composite starts from one donor's networks
    and takes the wall and carnivore networks from two further donors.
    """
    anchor = _donor(population, rng, pool_size).position(world)
    coordinate = rng.random_coordinate()
    position = (anchor * 2.0 + coordinate) / 3.0
    networks = _donor(population, rng, pool_size).get_brain()
    networks.wall_network = _donor(population, rng, pool_size).get_brain().wall_network
    networks.carnivore_network = _donor(population, rng, pool_size).get_brain().carnivore_network
    return BreedingPlan(position=position, networks=networks)


def run_population_pass(
    world: CollisionWorld,
    population: List[RandomWalker],
    rng: DeterministicRng,
    on_agent: Optional[Callable[[RandomWalker], None]] = None,
) -> PopulationStats:
    """Advance every agent of one population by a tick, in rank order.

    Dead agents respawn: members of the breeding pool keep their own networks,
    everyone else receives a mutated composite. Population averages are taken
    before each agent moves; the breeding-pool averages after.
    """
    pool_size = breeding_pool_size(len(population))
    stats = PopulationStats(count=len(population), pool_size=pool_size)
    for index, walker in enumerate(population):
        plan = plan_breeding(world, population, rng, pool_size)
        stats.health_sum += walker.health
        stats.score_sum += walker.score
        if walker.is_dead(world):
            stats.respawns += 1
            if index < pool_size:
                walker.respawn(world, plan.position, False, walker.get_brain())
            else:
                walker.respawn(world, plan.position, True, plan.networks)
        else:
            walker.update(world)
        if index < pool_size:
            stats.top_health_sum += walker.health
            stats.top_score_sum += walker.score
        if on_agent is not None:
            on_agent(walker)
    return stats


def rank_population(population: List[RandomWalker]) -> None:
    population.sort(key=lambda walker: walker.score, reverse=True)
