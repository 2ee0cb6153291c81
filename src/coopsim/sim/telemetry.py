"""Telemetry sinks for per-agent, per-event and per-tick records.

The simulation only ever hands finished records to a sink. A sink that fails
to persist a record drops it and logs the failure; it never raises back into
the tick that produced the record.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from dataclasses import astuple, fields
from pathlib import Path
from typing import IO, Any, Dict, List

from .types.records import AgentRecord, AverageRecord, EventRecord

logger = logging.getLogger(__name__)

SIMULATION_FILE = "simulation.csv"
EVENT_FILE = "event.csv"
AVERAGE_FILE = "average.csv"


class TelemetrySink(ABC):
    @abstractmethod
    def write_agent(self, record: AgentRecord) -> None:
        ...

    @abstractmethod
    def write_event(self, record: EventRecord) -> None:
        ...

    @abstractmethod
    def write_average(self, record: AverageRecord) -> None:
        ...

    def close(self) -> None:
        pass


class NullSink(TelemetrySink):
    def write_agent(self, record: AgentRecord) -> None:
        pass

    def write_event(self, record: EventRecord) -> None:
        pass

    def write_average(self, record: AverageRecord) -> None:
        pass


class MemorySink(TelemetrySink):
    def __init__(self) -> None:
        self.agents: List[AgentRecord] = []
        self.events: List[EventRecord] = []
        self.averages: List[AverageRecord] = []

    def write_agent(self, record: AgentRecord) -> None:
        self.agents.append(record)

    def write_event(self, record: EventRecord) -> None:
        self.events.append(record)

    def write_average(self, record: AverageRecord) -> None:
        self.averages.append(record)


class CsvSink(TelemetrySink):
    """Writes `simulation.csv`, `event.csv` and `average.csv` into one directory."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._files: Dict[str, IO[str]] = {}
        self._writers: Dict[str, Any] = {}
        self.dropped = 0
        for name, record_type in (
            (SIMULATION_FILE, AgentRecord),
            (EVENT_FILE, EventRecord),
            (AVERAGE_FILE, AverageRecord),
        ):
            handle = (self._directory / name).open("w", newline="")
            self._files[name] = handle
            writer = csv.writer(handle)
            writer.writerow([f.name for f in fields(record_type)])
            self._writers[name] = writer

    @property
    def directory(self) -> Path:
        return self._directory

    def write_agent(self, record: AgentRecord) -> None:
        self._write(SIMULATION_FILE, record)

    def write_event(self, record: EventRecord) -> None:
        self._write(EVENT_FILE, record)

    def write_average(self, record: AverageRecord) -> None:
        self._write(AVERAGE_FILE, record)

    def close(self) -> None:
        for name, handle in self._files.items():
            try:
                handle.close()
            except OSError as exc:
                logger.warning("Closing %s failed: %s", name, exc)
        self._files.clear()
        self._writers.clear()

    def _write(self, name: str, record: object) -> None:
        writer = self._writers.get(name)
        if writer is None:
            self.dropped += 1
            return
        try:
            writer.writerow(astuple(record))
            self._files[name].flush()
        except (OSError, ValueError) as exc:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 1000 == 0:
                logger.warning("Dropped telemetry row for %s (%d dropped so far): %s", name, self.dropped, exc)
