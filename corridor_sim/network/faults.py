"""
Spontaneous fault model.

A fault check runs once for every delivered poll reading. The configured
rate is per minute; one check stands for one second of exposure, so the
per-check probability is ``rate / 60``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from corridor_sim.network.sensors import Fault, Sensor, Severity

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import SimulationContext

DETECTED_FAULT_KIND = "vibration"

# Upper bounds of the severity bands on a single uniform draw
LOW_SEVERITY_BELOW = 0.5
MEDIUM_SEVERITY_BELOW = 0.8


def classify_severity(draw: float) -> Severity:
    """Map a uniform draw onto a severity band."""
    if draw < LOW_SEVERITY_BELOW:
        return Severity.LOW
    if draw < MEDIUM_SEVERITY_BELOW:
        return Severity.MEDIUM
    return Severity.HIGH


class FaultModel:
    """Decides whether a freshly polled sensor develops a fault."""

    def __init__(self, ctx: SimulationContext):
        self.ctx = ctx

    @property
    def probability_per_check(self) -> float:
        return self.ctx.config.fault_probability_per_minute / 60

    def evaluate(self, sensor: Sensor, current_time: int) -> Optional[Fault]:
        """
        Return a new fault for ``sensor`` or None.

        Sensors that already carry a fault are skipped without consuming
        any random draws. The returned fault is not applied; the caller
        owns the write through ``SensorNetwork.inject_fault``.
        """
        if sensor.fault is not None:
            return None

        rng = self.ctx.rng
        if rng.uniform() >= self.probability_per_check:
            return None

        severity = classify_severity(rng.uniform())
        return Fault(kind=DETECTED_FAULT_KIND, severity=severity, onset_time=current_time)
