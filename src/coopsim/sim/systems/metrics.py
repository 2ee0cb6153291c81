from __future__ import annotations

from ..types.metrics import TickMetrics
from ..types.records import AverageRecord
from .lifecycle import PopulationStats


def create_average_record(
    tick: int, herbivores: PopulationStats, carnivores_1: PopulationStats, carnivores_2: PopulationStats
) -> AverageRecord:
    return AverageRecord(
        timestep=tick,
        prey_avg_score=herbivores.average_score,
        hunter1_avg_score=carnivores_1.average_score,
        hunter2_avg_score=carnivores_2.average_score,
        prey_avg_health=herbivores.average_health,
        hunter1_avg_health=carnivores_1.average_health,
        hunter2_avg_health=carnivores_2.average_health,
        top_prey_avg_score=herbivores.top_average_score,
        top_hunter1_avg_score=carnivores_1.top_average_score,
        top_hunter2_avg_score=carnivores_2.top_average_score,
        top_prey_avg_health=herbivores.top_average_health,
        top_hunter1_avg_health=carnivores_1.top_average_health,
        top_hunter2_avg_health=carnivores_2.top_average_health,
    )


def create_metrics(
    tick: int,
    stats: tuple[PopulationStats, PopulationStats, PopulationStats],
    foods_eaten: int,
    predations: int,
    shared_hunts: int,
    best_scores: tuple[int, int],
    recording: bool,
    duration_ms: float,
) -> TickMetrics:
    herbivores, carnivores_1, carnivores_2 = stats
    best_herbivore, best_carnivore = best_scores
    return TickMetrics(
        tick=tick,
        herbivores=herbivores.count,
        carnivores_1=carnivores_1.count,
        carnivores_2=carnivores_2.count,
        respawns=herbivores.respawns + carnivores_1.respawns + carnivores_2.respawns,
        foods_eaten=foods_eaten,
        predations=predations,
        shared_hunts=shared_hunts,
        best_herbivore_score=best_herbivore,
        best_carnivore_score=best_carnivore,
        recording=recording,
        tick_duration_ms=duration_ms,
    )
