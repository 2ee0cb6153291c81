from __future__ import annotations

from dataclasses import dataclass

# Companion event rows describing a shared hunt use this marker as `first_id`.
HUNT_MARKER_ID = -3


@dataclass(slots=True)
class AgentRecord:
    timestep: int
    x: float
    y: float
    id: int
    health: int
    score: int
    entity: str


@dataclass(slots=True)
class EventRecord:
    timestep: int
    first_id: int
    second_id: int
    first: str
    second: str
    pos_x: int
    pos_y: int
    first_score: int
    second_score: int


@dataclass(slots=True)
class AverageRecord:
    timestep: int
    prey_avg_score: float
    hunter1_avg_score: float
    hunter2_avg_score: float
    prey_avg_health: float
    hunter1_avg_health: float
    hunter2_avg_health: float
    top_prey_avg_score: float
    top_hunter1_avg_score: float
    top_hunter2_avg_score: float
    top_prey_avg_health: float
    top_hunter1_avg_health: float
    top_hunter2_avg_health: float
