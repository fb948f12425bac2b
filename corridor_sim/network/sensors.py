"""
Sensor records and the network that owns them.

The network is laid out along a straight corridor: sensor ``i`` sits at
``i * spacing`` meters and belongs to block ``i // sensors_per_block``. The
first sensor of every block is the dominant one and gets a fixed high
reliability; the others draw theirs once when the network is built.

Telemetry is only ever changed through ``SensorNetwork.apply_reading`` and
faults only through ``inject_fault`` / ``clear_fault``, which together keep
the at-most-one-active-fault invariant.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from corridor_sim.errors import AlreadyFaulted, InvalidSensorId, NoActiveFault

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import SimulationContext

logger = logging.getLogger(__name__)

DOMINANT_RELIABILITY = 0.95
RELIABILITY_RANGE = (0.2, 1.0)
BASE_TEMPERATURE = 20.0      # degC
TEMPERATURE_SPREAD = 10.0    # degC
VIBRATION_SPREAD = 5.0       # mm/s


class Severity(Enum):
    """Severity of an active fault."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Reading:
    """One telemetry sample."""
    temperature: float
    vibration: float


@dataclass(frozen=True)
class Fault:
    """
    An unresolved equipment fault.

    Attributes:
        kind: What failed ("vibration" for detected faults, "manual" for injected ones)
        severity: Severity class
        onset_time: Simulated second the fault appeared
    """
    kind: str
    severity: Severity
    onset_time: int

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "severity": self.severity.value,
            "onsetTime": self.onset_time,
        }


@dataclass
class Sensor:
    """A sensor on the corridor together with its live state."""
    sensor_id: int
    position: float
    block: int
    dominant: bool
    reliability: float
    reading: Reading
    fault: Optional[Fault] = None
    last_polled: int = 0

    @property
    def faulted(self) -> bool:
        return self.fault is not None


class SensorNetwork:
    """
    The fixed set of sensors for one run.

    Sensor ids are dense, ``0 .. sensor_count - 1``, so the network is
    stored as a list indexed by id.
    """

    def __init__(self, ctx: SimulationContext):
        self.ctx = ctx
        self._sensors: List[Sensor] = []
        self.initialize()

    def initialize(self) -> List[Sensor]:
        """
        Build every sensor from scratch, drawing fresh random values.

        Draw order per sensor: reliability (non-dominant only), base
        temperature, base vibration, then the noise on each reading.
        """
        config = self.ctx.config
        rng = self.ctx.rng
        spacing = config.corridor_length / config.sensor_count

        sensors = []
        for i in range(config.sensor_count):
            dominant = (i % config.sensors_per_block) == 0
            if dominant:
                reliability = DOMINANT_RELIABILITY
            else:
                reliability = rng.between(*RELIABILITY_RANGE)

            temperature = BASE_TEMPERATURE + rng.uniform() * TEMPERATURE_SPREAD
            vibration = rng.uniform() * VIBRATION_SPREAD
            reading = Reading(
                temperature=rng.noisy(temperature, config.noise_level),
                vibration=rng.noisy(vibration, config.noise_level),
            )

            sensors.append(Sensor(
                sensor_id=i,
                position=i * spacing,
                block=i // config.sensors_per_block,
                dominant=dominant,
                reliability=reliability,
                reading=reading,
            ))

        self._sensors = sensors
        logger.debug(f"Initialized {len(sensors)} sensors "
                     f"({sum(s.dominant for s in sensors)} dominant)")
        return sensors

    def get(self, sensor_id: int) -> Sensor:
        """
        Return the sensor with ``sensor_id`` or raise ``InvalidSensorId``.

        Any integer type is accepted (numpy indices included), bools are not.
        """
        if isinstance(sensor_id, bool):
            raise InvalidSensorId(sensor_id, len(self._sensors))
        try:
            index = operator.index(sensor_id)
        except TypeError:
            raise InvalidSensorId(sensor_id, len(self._sensors)) from None
        if not 0 <= index < len(self._sensors):
            raise InvalidSensorId(sensor_id, len(self._sensors))
        return self._sensors[index]

    def ids(self) -> List[int]:
        return [s.sensor_id for s in self._sensors]

    def faulted(self) -> List[Sensor]:
        """Sensors that currently have an active fault."""
        return [s for s in self._sensors if s.fault is not None]

    def apply_reading(self, sensor_id: int, reading: Reading) -> Sensor:
        """Overwrite a sensor's reading and stamp ``last_polled``."""
        sensor = self.get(sensor_id)
        sensor.reading = reading
        sensor.last_polled = self.ctx.sim_time
        return sensor

    def inject_fault(self, sensor_id: int, kind: str, severity: Severity) -> Fault:
        """
        Give a sensor an active fault starting now.

        Raises:
            InvalidSensorId: If the id is out of range
            AlreadyFaulted: If the sensor already has an active fault
        """
        sensor = self.get(sensor_id)
        if sensor.fault is not None:
            raise AlreadyFaulted(sensor.sensor_id)
        sensor.fault = Fault(kind=kind, severity=severity, onset_time=self.ctx.sim_time)
        return sensor.fault

    def clear_fault(self, sensor_id: int) -> Fault:
        """
        Remove a sensor's active fault and return it.

        Raises:
            InvalidSensorId: If the id is out of range
            NoActiveFault: If the sensor has no active fault
        """
        sensor = self.get(sensor_id)
        if sensor.fault is None:
            raise NoActiveFault(sensor.sensor_id)
        fault, sensor.fault = sensor.fault, None
        return fault

    def __iter__(self) -> Iterator[Sensor]:
        return iter(self._sensors)

    def __len__(self) -> int:
        return len(self._sensors)
