from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    herbivores: int
    carnivores_1: int
    carnivores_2: int
    respawns: int
    foods_eaten: int
    predations: int
    shared_hunts: int
    best_herbivore_score: int
    best_carnivore_score: int
    recording: bool
    tick_duration_ms: float = 0.0
