"""
Patrol UAV kinematics and battery.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import SimulationContext

FULL_BATTERY = 100.0


@dataclass(frozen=True)
class UAVState:
    """Position (m along the corridor), battery (%) and wind effect (m/s)."""
    position: float = 0.0
    battery: float = FULL_BATTERY
    wind_effect: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "position": self.position,
            "battery": self.battery,
            "windEffect": self.wind_effect,
        }


class UAV:
    """
    The patrol aircraft.

    Flies the corridor end to end and wraps back to 0. The battery only
    drains; nothing recharges it during a run.
    """

    def __init__(self, ctx: SimulationContext):
        self.ctx = ctx
        self.state = UAVState()

    def advance(self) -> UAVState:
        """Move and drain the UAV by one tick."""
        config = self.ctx.config
        position = (self.state.position + config.uav_speed) % config.corridor_length
        battery = max(0.0, self.state.battery - config.battery_drain_per_tick)
        # Display-only value; the noise is relative so a zero base stays at zero
        wind_effect = self.ctx.rng.noisy(0.0, config.wind_noise_level)
        self.state = UAVState(position=position, battery=battery, wind_effect=wind_effect)
        return self.state

    def reset(self) -> None:
        self.state = UAVState()
