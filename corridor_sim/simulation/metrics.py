"""
Run metrics for the corridor patrol simulation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List

import numpy as np

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import Snapshot


@dataclass
class SimulationMetrics:
    """Counters and samples collected while a run advances."""
    ticks: int = 0
    polls_sent: int = 0
    polls_dropped: int = 0
    deliveries_applied: int = 0
    faults_detected: int = 0
    manual_faults: int = 0
    skipped_injections: int = 0
    crews_dispatched: int = 0
    repairs_completed: int = 0
    isolated_errors: int = 0  # Per-delivery / per-crew failures that were logged and skipped
    latencies_ms: List[float] = field(default_factory=list)
    repair_durations: List[float] = field(default_factory=list)

    @property
    def loss_rate(self) -> float:
        return self.polls_dropped / self.polls_sent if self.polls_sent > 0 else 0.0

    def record_delivery(self, delay_ms: float) -> None:
        self.deliveries_applied += 1
        self.latencies_ms.append(delay_ms)

    def record_repair(self, duration: float) -> None:
        self.repairs_completed += 1
        self.repair_durations.append(duration)

    def latency_summary(self) -> Dict[str, float]:
        """Mean, standard deviation and 95th percentile of applied latencies (ms)."""
        return _summarize(self.latencies_ms)

    def repair_summary(self) -> Dict[str, float]:
        """Same summary for dispatch-to-completion times (s)."""
        return _summarize(self.repair_durations)

    def to_dict(self) -> Dict:
        return {
            "ticks": self.ticks,
            "polls_sent": self.polls_sent,
            "polls_dropped": self.polls_dropped,
            "loss_rate": self.loss_rate,
            "deliveries_applied": self.deliveries_applied,
            "faults_detected": self.faults_detected,
            "manual_faults": self.manual_faults,
            "skipped_injections": self.skipped_injections,
            "crews_dispatched": self.crews_dispatched,
            "repairs_completed": self.repairs_completed,
            "isolated_errors": self.isolated_errors,
            "latency_ms": self.latency_summary(),
            "repair_s": self.repair_summary(),
        }


def _summarize(samples: List[float]) -> Dict[str, float]:
    if not samples:
        return {"n": 0, "mean": 0.0, "std": 0.0, "p95": 0.0}
    values = np.asarray(samples, dtype=float)
    return {
        "n": int(values.size),
        "mean": float(values.mean()),
        "std": float(values.std()),
        "p95": float(np.percentile(values, 95)),
    }


def fault_risk_profile(snapshot: Snapshot) -> np.ndarray:
    """
    Per-sensor fault risk in percent, ordered by sensor id.

    A faulted sensor is at 100; the others sit at ``(1 - reliability) * 100``.
    """
    return np.array([
        100.0 if s.fault is not None else (1.0 - s.reliability) * 100.0
        for s in snapshot.sensors
    ])
