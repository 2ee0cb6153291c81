from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

from pygame.math import Vector2

from ..systems import lifecycle, metrics as metrics_system
from ..systems.interactions import InteractionOutcome, InteractionRules, resolve_proximity_events
from ..telemetry import NullSink, TelemetrySink
from ..types.metrics import TickMetrics
from ..types.records import HUNT_MARKER_ID, AgentRecord, EventRecord
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from .collision import Ball, BodyData, CollisionWorld, ConvexPolygon, Segment, diamond_points
from .config import SimulationConfig
from .entity import (
    ALLIANCE_GROUPS,
    CARNIVORE_GROUPS,
    FOOD_GROUPS,
    HERBIVORE_GROUPS,
    WALL_GROUPS,
    Entity,
)
from .fixtures import Food, Wall
from .rng import DeterministicRng
from .walker import RandomWalker

logger = logging.getLogger(__name__)

FOOD_ID = -2
WALL_ID = -1
HERBIVORE_SEED_OFFSET = 3333
CARNIVORE_SEED_OFFSET = 5555
PROGRESS_INTERVAL = 1000


class World:
    """Arena, populations and the ordered per-tick pipeline."""

    def __init__(self, config: SimulationConfig, sink: Optional[TelemetrySink] = None):
        self._config = config
        self._sink: TelemetrySink = sink if sink is not None else NullSink()
        self._rules = InteractionRules(
            food_nutrition=config.food_nutrition,
            herbivore_nutrition=config.herbivore_nutrition,
            threshold_herbivore_score=config.threshold_herbivore_score,
            sharing_fraction_1=config.sharing_fraction_1,
            sharing_fraction_2=config.sharing_fraction_2,
            faction_2_first_id=config.carnivore_amount_1,
        )
        self._metrics: TickMetrics | None = None
        self._recording = False
        self._build()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def collision(self) -> CollisionWorld:
        return self._collision

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def herbivores(self) -> List[RandomWalker]:
        return self._herbivores

    @property
    def carnivores_1(self) -> List[RandomWalker]:
        return self._carnivores_1

    @property
    def carnivores_2(self) -> List[RandomWalker]:
        return self._carnivores_2

    @property
    def foods(self) -> List[Food]:
        return self._foods

    @property
    def walls(self) -> List[Wall]:
        return self._walls

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def best_herbivore_score(self) -> int:
        return self._best_herbivore_score

    @property
    def best_carnivore_score(self) -> int:
        return self._best_carnivore_score

    def reset(self) -> None:
        self._metrics = None
        self._recording = False
        self._build()

    def is_recording(self, tick: int) -> bool:
        """Whether `tick` falls inside the recording window, in simulated minutes."""
        config = self._config
        seconds = tick / config.updates_per_second
        start = config.start_recording * 60
        stop = (config.start_recording + config.recording_duration) * 60
        return start <= seconds <= stop

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        recording = self.is_recording(tick)
        if recording != self._recording:
            logger.info("Recording %s at tick %d", "started" if recording else "stopped", tick)
            self._recording = recording
        if tick % PROGRESS_INTERVAL == 0:
            logger.info(
                "Tick %d: best herbivore %d, best carnivore %d",
                tick,
                self._best_herbivore_score,
                self._best_carnivore_score,
            )

        record_agents = recording and config.record_all_details
        stats = []
        for population in (self._herbivores, self._carnivores_1, self._carnivores_2):
            on_agent = (lambda walker: self._write_agent(tick, walker)) if record_agents else None
            stats.append(lifecycle.run_population_pass(self._collision, population, self._rng, on_agent))

        for population in (self._herbivores, self._carnivores_1, self._carnivores_2):
            lifecycle.rank_population(population)
        self._best_herbivore_score = self._herbivores[0].score if self._herbivores else 0
        best_carnivore = 0
        for population in (self._carnivores_1, self._carnivores_2):
            if population:
                best_carnivore = max(best_carnivore, population[0].score)
        self._best_carnivore_score = best_carnivore

        self._collision.update()
        outcomes = resolve_proximity_events(self._collision, self._rules, self._collision.proximity_events())
        predations = 0
        shared_hunts = 0
        for outcome in outcomes:
            if outcome.predation is not None:
                predations += 1
                if outcome.predation.allies > 0:
                    shared_hunts += 1
            if recording:
                self._write_events(tick, outcome)
        foods_eaten = 0
        for food in self._foods:
            if food.update(self._collision, self._rng):
                foods_eaten += 1
        self._collision.update()

        herbivore_stats, carnivore_1_stats, carnivore_2_stats = stats
        self._sink.write_average(
            metrics_system.create_average_record(tick, herbivore_stats, carnivore_1_stats, carnivore_2_stats)
        )
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick,
            (herbivore_stats, carnivore_1_stats, carnivore_2_stats),
            foods_eaten,
            predations,
            shared_hunts,
            (self._best_herbivore_score, self._best_carnivore_score),
            recording,
            duration_ms,
        )
        return self._metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._idle_metrics(tick)
        agents: List[Dict[str, Any]] = []
        for faction, population in enumerate((self._herbivores, self._carnivores_1, self._carnivores_2)):
            pool_size = lifecycle.breeding_pool_size(len(population))
            for rank, walker in enumerate(population):
                agents.append(self._agent_snapshot(walker, faction, rank < pool_size))
        foods = []
        for food in self._foods:
            position = self._collision.position(food.handle)
            foods.append({"x": position.x, "y": position.y, "radius": food.size})
        walls = [
            {"x1": wall.first.x, "y1": wall.first.y, "x2": wall.second.x, "y2": wall.second.y}
            for wall in self._walls
        ]
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=agents,
            foods=foods,
            world=SnapshotWorld(width=self._config.screen_size_x, height=self._config.screen_size_y, walls=walls),
            metadata=SnapshotMetadata(
                updates_per_second=self._config.updates_per_second,
                seed=self._config.seed,
                map=self._config.map,
            ),
        )

    def _build(self) -> None:
        config = self._config
        self._rng = DeterministicRng(config.seed, config.screen_size_x, config.screen_size_y)
        cell_size = max(config.view_range, config.share_range * 2.0, config.herbivore_size, config.carnivore_size)
        self._collision = CollisionWorld(cell_size)
        self._best_herbivore_score = 0
        self._best_carnivore_score = 0

        food_radius = config.herbivore_size / 2.0
        self._foods: List[Food] = []
        for _ in range(config.food_amount):
            handle = self._collision.add(
                self._rng.random_coordinate(), Ball(food_radius), FOOD_GROUPS, BodyData(Entity.FOOD, FOOD_ID)
            )
            self._foods.append(Food(handle, food_radius))

        self._herbivores: List[RandomWalker] = []
        herbivore_shape = ConvexPolygon(diamond_points(config.herbivore_size))
        for i in range(config.herbivore_amount):
            data = BodyData(Entity.HERBIVORE, i, energy=config.initial_herbivore_health)
            handle = self._collision.add(self._rng.random_coordinate(), herbivore_shape, HERBIVORE_GROUPS, data)
            self._herbivores.append(
                RandomWalker(
                    handle,
                    None,
                    i,
                    config.herbivore_size,
                    config.herbivore_speed,
                    config.initial_herbivore_health,
                    Entity.HERBIVORE,
                    config.thinking_time,
                    config.view_range,
                    config.mutation_rate,
                    config.seed + i + HERBIVORE_SEED_OFFSET,
                )
            )

        self._carnivores_1 = [self._add_carnivore(i) for i in range(config.carnivore_amount_1)]
        self._carnivores_2 = [
            self._add_carnivore(config.carnivore_amount_1 + i) for i in range(config.carnivore_amount_2)
        ]

        self._walls: List[Wall] = []
        for wall in config.walls:
            first = Vector2(wall.x1 * config.screen_size_x, wall.y1 * config.screen_size_y)
            second = Vector2(wall.x2 * config.screen_size_x, wall.y2 * config.screen_size_y)
            handle = self._collision.add(
                Vector2(),
                Segment((first.x, first.y), (second.x, second.y)),
                WALL_GROUPS,
                BodyData(Entity.WALL, WALL_ID),
            )
            self._walls.append(Wall(handle, first, second))

    def _add_carnivore(self, carnivore_id: int) -> RandomWalker:
        config = self._config
        position = self._rng.random_coordinate()
        alliance_handle = self._collision.add(
            position, Ball(config.share_range), ALLIANCE_GROUPS, BodyData(Entity.OTHER, carnivore_id)
        )
        data = BodyData(
            Entity.CARNIVORE, carnivore_id, alliance_handle=alliance_handle, energy=config.initial_carnivore_health
        )
        handle = self._collision.add(
            position, ConvexPolygon(diamond_points(config.carnivore_size)), CARNIVORE_GROUPS, data
        )
        return RandomWalker(
            handle,
            alliance_handle,
            carnivore_id,
            config.carnivore_size,
            config.carnivore_speed,
            config.initial_carnivore_health,
            Entity.CARNIVORE,
            config.thinking_time,
            config.view_range,
            config.mutation_rate,
            config.seed + carnivore_id + CARNIVORE_SEED_OFFSET,
        )

    def _write_agent(self, tick: int, walker: RandomWalker) -> None:
        position = walker.position(self._collision)
        self._sink.write_agent(
            AgentRecord(
                timestep=tick,
                x=position.x,
                y=position.y,
                id=walker.id,
                health=walker.health,
                score=walker.score,
                entity=str(walker.entity),
            )
        )

    def _write_events(self, tick: int, outcome: InteractionOutcome) -> None:
        if outcome.involves_alliance_zone:
            return
        self._sink.write_event(
            EventRecord(
                timestep=tick,
                first_id=outcome.first_id,
                second_id=outcome.second_id,
                first=str(outcome.first),
                second=str(outcome.second),
                pos_x=int(outcome.position.x),
                pos_y=int(outcome.position.y),
                first_score=outcome.first_score,
                second_score=outcome.second_score,
            )
        )
        predation = outcome.predation
        if predation is None or predation.allies == 0:
            return
        position = self._collision.position(predation.herbivore_handle)
        self._sink.write_event(
            EventRecord(
                timestep=tick,
                first_id=HUNT_MARKER_ID,
                second_id=predation.party_size,
                first=str(Entity.OTHER),
                second=str(Entity.OTHER),
                pos_x=int(position.x),
                pos_y=int(position.y),
                first_score=0,
                second_score=0,
            )
        )

    def _agent_snapshot(self, walker: RandomWalker, faction: int, top: bool) -> Dict[str, Any]:
        position = walker.position(self._collision)
        return {
            "id": walker.id,
            "kind": str(walker.entity),
            "faction": faction,
            "x": position.x,
            "y": position.y,
            "facing": walker.facing,
            "size": walker.size,
            "health": walker.health,
            "score": walker.score,
            "top": top,
        }

    def _idle_metrics(self, tick: int) -> TickMetrics:
        return TickMetrics(
            tick=tick,
            herbivores=len(self._herbivores),
            carnivores_1=len(self._carnivores_1),
            carnivores_2=len(self._carnivores_2),
            respawns=0,
            foods_eaten=0,
            predations=0,
            shared_hunts=0,
            best_herbivore_score=self._best_herbivore_score,
            best_carnivore_score=self._best_carnivore_score,
            recording=self._recording,
        )
