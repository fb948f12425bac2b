"""
Append-only alert feed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List


def format_sim_time(seconds: float) -> str:
    """Render simulated seconds as ``m:ss``."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


@dataclass(frozen=True)
class Alert:
    """A single operator-facing notice."""
    sensor_id: int
    message: str
    time: int

    def to_dict(self) -> Dict:
        return {"sensorId": self.sensor_id, "message": self.message, "time": self.time}

    def __str__(self) -> str:
        return f"{self.message} at {format_sim_time(self.time)}"


class AlertFeed:
    """
    Ordered record of every alert raised during a run.

    The full sequence is kept for the life of the run; consumers normally
    only look at the most recent few through ``recent``.
    """

    def __init__(self) -> None:
        self._alerts: List[Alert] = []

    def emit(self, sensor_id: int, message: str, time: int) -> Alert:
        alert = Alert(sensor_id=sensor_id, message=message, time=time)
        self._alerts.append(alert)
        return alert

    def recent(self, n: int) -> List[Alert]:
        """The last ``n`` alerts, oldest first."""
        if n <= 0:
            return []
        return self._alerts[-n:]

    def for_sensor(self, sensor_id: int) -> List[Alert]:
        return [a for a in self._alerts if a.sensor_id == sensor_id]

    def clear(self) -> None:
        self._alerts.clear()

    def __iter__(self) -> Iterator[Alert]:
        return iter(self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)
