"""
Simulation configuration.

Defaults describe a 5 km corridor with 50 sensors in five 1 km blocks,
patrolled at 50 m/s and polled every 10 simulated seconds.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional

# =============================================================================
# DEFAULTS
# =============================================================================

CORRIDOR_LENGTH = 5000.0             # meters
NUM_SENSORS = 50
SENSORS_PER_BLOCK = 10
UAV_SPEED = 50.0                     # m/s (180 km/h)
POLL_INTERVAL = 10                   # seconds
LATENCY_MIN_MS = 1000.0
LATENCY_MAX_MS = 5000.0
PACKET_LOSS_RATE = 0.05
FAULT_PROBABILITY_PER_MINUTE = 0.1   # per sensor
BATTERY_DRAIN_PER_TICK = 0.01        # percent per second
NOISE_LEVEL = 0.1
WIND_NOISE_LEVEL = 0.2
ALERT_WINDOW = 5
DEFAULT_SEED = 42


# =============================================================================
# LINK PROFILES
# =============================================================================

@dataclass(frozen=True)
class LinkProfile:
    """Named packet-loss / latency preset for the UAV-to-sensor link."""
    name: str
    packet_loss_rate: float
    latency_min_ms: float
    latency_max_ms: float


LINK_PROFILES = {
    "nominal": LinkProfile("nominal", PACKET_LOSS_RATE, LATENCY_MIN_MS, LATENCY_MAX_MS),
    "degraded": LinkProfile("degraded", 0.20, 2000.0, 8000.0),
    # Latency longer than the poll interval, so deliveries pile up across cycles
    "congested": LinkProfile("congested", 0.10, 4000.0, 15000.0),
}


@dataclass(frozen=True)
class SimulationConfig:
    """
    Every tunable constant of a run.

    Attributes:
        corridor_length: Length of the corridor in meters
        sensor_count: Number of sensors, evenly spaced from position 0
        sensors_per_block: Block size; the first sensor of a block is dominant
        uav_speed: UAV ground speed in meters per tick
        poll_interval: Ticks between poll cycles
        latency_min_ms: Lower bound of one-way link latency
        latency_max_ms: Upper bound of one-way link latency
        packet_loss_rate: Probability a single poll is dropped
        fault_probability_per_minute: Spontaneous fault rate per sensor
        battery_drain_per_tick: Battery percent lost per tick
        noise_level: Relative noise applied to readings
        wind_noise_level: Noise level of the UAV wind-effect value
        alert_window: How many recent alerts a snapshot carries
        seed: Seed for the run's random source
    """
    corridor_length: float = CORRIDOR_LENGTH
    sensor_count: int = NUM_SENSORS
    sensors_per_block: int = SENSORS_PER_BLOCK
    uav_speed: float = UAV_SPEED
    poll_interval: int = POLL_INTERVAL
    latency_min_ms: float = LATENCY_MIN_MS
    latency_max_ms: float = LATENCY_MAX_MS
    packet_loss_rate: float = PACKET_LOSS_RATE
    fault_probability_per_minute: float = FAULT_PROBABILITY_PER_MINUTE
    battery_drain_per_tick: float = BATTERY_DRAIN_PER_TICK
    noise_level: float = NOISE_LEVEL
    wind_noise_level: float = WIND_NOISE_LEVEL
    alert_window: int = ALERT_WINDOW
    seed: Optional[int] = DEFAULT_SEED

    def __post_init__(self) -> None:
        if self.corridor_length <= 0:
            raise ValueError("corridor_length must be positive")
        if self.sensor_count <= 0:
            raise ValueError("sensor_count must be positive")
        if self.sensors_per_block <= 0:
            raise ValueError("sensors_per_block must be positive")
        if self.uav_speed < 0:
            raise ValueError("uav_speed must be non-negative")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.latency_min_ms < 0:
            raise ValueError("latency_min_ms must be non-negative")
        if self.latency_max_ms < self.latency_min_ms:
            raise ValueError("latency_max_ms must be >= latency_min_ms")
        if not 0.0 <= self.packet_loss_rate <= 1.0:
            raise ValueError("packet_loss_rate must be between 0.0 and 1.0")
        if not 0.0 <= self.fault_probability_per_minute <= 60.0:
            raise ValueError("fault_probability_per_minute must be between 0.0 and 60.0")
        if self.battery_drain_per_tick < 0:
            raise ValueError("battery_drain_per_tick must be non-negative")
        if self.alert_window < 0:
            raise ValueError("alert_window must be non-negative")

    def with_link_profile(self, name: str) -> SimulationConfig:
        """Return a copy using the named link preset."""
        try:
            profile = LINK_PROFILES[name]
        except KeyError:
            raise ValueError(
                f"unknown link profile {name!r}; choose from {sorted(LINK_PROFILES)}"
            ) from None
        return replace(
            self,
            packet_loss_rate=profile.packet_loss_rate,
            latency_min_ms=profile.latency_min_ms,
            latency_max_ms=profile.latency_max_ms,
        )

    def to_dict(self) -> Dict:
        return asdict(self)
