from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, get_type_hints

import yaml

from ...errors import ConfigError


@dataclass
class WallConfig:
    """Wall endpoints in normalised arena coordinates (0..1)."""

    x1: float
    y1: float
    x2: float
    y2: float


def _box_walls() -> List[WallConfig]:
    return [
        WallConfig(0.02, 0.02, 0.98, 0.02),
        WallConfig(0.98, 0.02, 0.98, 0.98),
        WallConfig(0.98, 0.98, 0.02, 0.98),
        WallConfig(0.02, 0.98, 0.02, 0.02),
    ]


@dataclass
class SimulationConfig:
    food_amount: int = 80
    herbivore_amount: int = 40
    carnivore_amount_1: int = 10
    carnivore_amount_2: int = 10
    updates_per_second: float = 60.0
    screen_size_x: float = 1000.0
    screen_size_y: float = 800.0
    seed: int = 42
    herbivore_speed: float = 2.0
    carnivore_speed: float = 2.2
    initial_herbivore_health: int = 1000
    initial_carnivore_health: int = 1500
    food_nutrition: int = 300
    herbivore_nutrition: int = 600
    threshold_herbivore_score: int = 1000
    sharing_percentage_1: int = 0
    sharing_percentage_2: int = 50
    share_range: float = 80.0
    mutation_rate: float = 0.1
    herbivore_size: float = 30.0
    carnivore_size: float = 40.0
    thinking_time: int = 10
    view_range: float = 150.0
    start_recording: int = 0
    recording_duration: int = 10
    record_all_details: bool = False
    map: str = "box"
    walls: List[WallConfig] = field(default_factory=_box_walls)

    def __post_init__(self) -> None:
        self.validate()

    @property
    def sharing_fraction_1(self) -> float:
        return self.sharing_percentage_1 / 100.0

    @property
    def sharing_fraction_2(self) -> float:
        return self.sharing_percentage_2 / 100.0

    @property
    def seconds_per_update(self) -> float:
        return 1.0 / self.updates_per_second

    def validate(self) -> None:
        for name in ("food_amount", "herbivore_amount", "carnivore_amount_1", "carnivore_amount_2"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in (
            "updates_per_second",
            "screen_size_x",
            "screen_size_y",
            "herbivore_size",
            "carnivore_size",
            "view_range",
            "threshold_herbivore_score",
            "thinking_time",
            "initial_herbivore_health",
            "initial_carnivore_health",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("sharing_percentage_1", "sharing_percentage_2"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"{name} must be within 0..100, got {value}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ConfigError(f"mutation_rate must be within 0..1, got {self.mutation_rate}")
        if self.share_range < 0 or self.start_recording < 0 or self.recording_duration < 0:
            raise ConfigError("share_range, start_recording and recording_duration must not be negative")
        margin = 80.0
        if self.screen_size_x <= margin or self.screen_size_y <= margin:
            raise ConfigError("screen size must exceed the 40 unit spawn margin on both sides")

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        path = Path(path)
        raw = _read_mapping(path)
        map_name = raw.get("map")
        if not isinstance(map_name, str) or not map_name:
            raise ConfigError(f"{path}: 'map' must name a wall file")
        walls_raw = _read_mapping(_wall_file(path.parent, map_name))
        return load_config(raw, walls_raw, require_all=True)


def _wall_file(directory: Path, map_name: str) -> Path:
    for suffix in (".yaml", ".yml", ".json"):
        candidate = directory / "walls" / f"{map_name}{suffix}"
        if candidate.is_file():
            return candidate
    raise ConfigError(f"wall map '{map_name}' not found under {directory / 'walls'}")


def _read_mapping(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(Path(path).read_text())
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path} is not valid YAML/JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _coerce(name: str, value: Any, expected: Any) -> Any:
    if expected is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"{name} must be a boolean, got {value!r}")
        return value
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer, got {value!r}")
        return value
    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{name} must be a number, got {value!r}")
        return float(value)
    if expected is str:
        if not isinstance(value, str):
            raise ConfigError(f"{name} must be a string, got {value!r}")
        return value
    return value


def _load_walls(walls_raw: Any) -> List[WallConfig]:
    entries = walls_raw.get("walls") if isinstance(walls_raw, dict) else walls_raw
    if not isinstance(entries, list):
        raise ConfigError("wall map must contain a 'walls' list")
    walls = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"wall #{index} must be a mapping")
        missing = {"x1", "y1", "x2", "y2"} - set(entry)
        if missing:
            raise ConfigError(f"wall #{index} is missing {sorted(missing)}")
        walls.append(
            WallConfig(**{key: _coerce(f"wall #{index}.{key}", entry[key], float) for key in ("x1", "y1", "x2", "y2")})
        )
    return walls


def load_config(
    raw: Dict[str, Any], walls_raw: Optional[Any] = None, require_all: bool = False
) -> SimulationConfig:
    hints = get_type_hints(SimulationConfig)
    scalar_names = [f.name for f in fields(SimulationConfig) if f.name != "walls"]
    unknown = set(raw) - set(scalar_names) - {"walls"}
    if unknown:
        raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")
    if require_all:
        missing = [name for name in scalar_names if name not in raw]
        if missing:
            raise ConfigError(f"missing configuration keys: {missing}")
    values = {name: _coerce(name, raw[name], hints[name]) for name in scalar_names if name in raw}
    if walls_raw is None and "walls" in raw:
        walls_raw = raw["walls"]
    if walls_raw is not None:
        values["walls"] = _load_walls(walls_raw)
    return SimulationConfig(**values)
