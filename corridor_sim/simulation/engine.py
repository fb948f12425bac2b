"""
Simulation engine for the corridor patrol model.

One ``SimulationClock`` drives one run. Every mutable piece of the run
(sensors, alerts, metrics, simulated time, the random stream) lives on a
``SimulationContext`` that each component holds a reference to, so any
number of independent simulations can exist side by side.

Per tick, while running:

1. Advance simulated time by one second
2. Apply every poll response that has become due
3. Move the UAV and drain its battery
4. Poll all sensors if the poll interval divides the new time
5. Complete repair crews whose ETA has passed
6. Build a snapshot and hand it to observers

Deferred work is drained at the start of the tick that reaches it, never
mid-tick, so a snapshot always reflects a whole tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from corridor_sim.errors import AlreadyFaulted
from corridor_sim.network import (
    Fault,
    FaultModel,
    RandomSource,
    Sensor,
    SensorNetwork,
    Severity,
)
from corridor_sim.simulation.alerts import Alert, AlertFeed
from corridor_sim.simulation.config import SimulationConfig
from corridor_sim.simulation.link import PollLink
from corridor_sim.simulation.metrics import SimulationMetrics
from corridor_sim.simulation.repair import RepairDispatcher
from corridor_sim.simulation.uav import UAV, UAVState

logger = logging.getLogger(__name__)

MANUAL_FAULT_KIND = "manual"


# =============================================================================
# CONTEXT
# =============================================================================

class SimulationContext:
    """
    Shared state of a single run.

    Attributes:
        config: Immutable run configuration
        rng: The run's only source of randomness
        sim_time: Simulated seconds since the run started
        alerts: Full alert history of the run
        metrics: Counters for the run
        network: The sensor network
    """

    def __init__(self, config: SimulationConfig, rng: Optional[RandomSource] = None):
        self.config = config
        self.rng = rng if rng is not None else RandomSource(config.seed)
        self.sim_time = 0
        self.alerts = AlertFeed()
        self.metrics = SimulationMetrics()
        self.network = SensorNetwork(self)

    def reset(self) -> None:
        """Back to time 0 with an empty history and a freshly drawn network."""
        self.sim_time = 0
        self.alerts.clear()
        self.metrics = SimulationMetrics()
        self.network.initialize()


# =============================================================================
# SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class SensorSnapshot:
    """Read-only copy of one sensor's state."""
    sensor_id: int
    position: float
    block: int
    dominant: bool
    temperature: float
    vibration: float
    reliability: float
    last_polled: int
    fault: Optional[Fault]

    @classmethod
    def from_sensor(cls, sensor: Sensor) -> SensorSnapshot:
        return cls(
            sensor_id=sensor.sensor_id,
            position=sensor.position,
            block=sensor.block,
            dominant=sensor.dominant,
            temperature=sensor.reading.temperature,
            vibration=sensor.reading.vibration,
            reliability=sensor.reliability,
            last_polled=sensor.last_polled,
            fault=sensor.fault,
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.sensor_id,
            "position": self.position,
            "block": self.block,
            "dominant": self.dominant,
            "temp": self.temperature,
            "vib": self.vibration,
            "reliability": self.reliability,
            "lastPolled": self.last_polled,
            "fault": self.fault.to_dict() if self.fault is not None else None,
        }


@dataclass(frozen=True)
class Snapshot:
    """Everything a renderer needs after one tick."""
    sim_time: int
    uav: UAVState
    sensors: Tuple[SensorSnapshot, ...]
    alerts: Tuple[Alert, ...]

    def to_dict(self) -> Dict:
        return {
            "simTime": self.sim_time,
            "uav": self.uav.to_dict(),
            "sensors": [s.to_dict() for s in self.sensors],
            "alerts": [a.to_dict() for a in self.alerts],
        }


Observer = Callable[[Snapshot], None]


# =============================================================================
# CLOCK
# =============================================================================

class ClockState(Enum):
    """Run state of the clock."""
    STOPPED = "stopped"
    RUNNING = "running"


class SimulationClock:
    """
    Top-level driver of a corridor patrol run.

    Commands: ``start``, ``stop``, ``reset`` and ``inject_fault``. The clock
    is single-writer: it is not thread-safe, and callers driving it from
    several threads must serialize their calls.

    Example:
        >>> clock = SimulationClock(SimulationConfig(seed=7))
        >>> snapshots = clock.run(100)
        >>> snapshots[-1].sim_time
        100
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 rng: Optional[RandomSource] = None):
        self.config = config if config is not None else SimulationConfig()
        self.ctx = SimulationContext(self.config, rng)
        self.fault_model = FaultModel(self.ctx)
        self.link = PollLink(self.ctx, self.fault_model, on_fault=self._raise_detected_fault)
        self.dispatcher = RepairDispatcher(self.ctx)
        self.uav = UAV(self.ctx)
        self.state = ClockState.STOPPED
        self._observers: List[Observer] = []

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.state is ClockState.RUNNING

    @property
    def sim_time(self) -> int:
        return self.ctx.sim_time

    @property
    def network(self) -> SensorNetwork:
        return self.ctx.network

    @property
    def alerts(self) -> AlertFeed:
        return self.ctx.alerts

    @property
    def metrics(self) -> SimulationMetrics:
        return self.ctx.metrics

    def get_snapshot(self) -> Snapshot:
        """Current state; takes no random draws and changes nothing."""
        return Snapshot(
            sim_time=self.ctx.sim_time,
            uav=self.uav.state,
            sensors=tuple(SensorSnapshot.from_sensor(s) for s in self.ctx.network),
            alerts=tuple(self.ctx.alerts.recent(self.config.alert_window)),
        )

    def subscribe(self, observer: Observer) -> None:
        """Call ``observer`` with the snapshot at the end of every tick."""
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Begin ticking. Returns False if already running."""
        if self.running:
            return False
        self.state = ClockState.RUNNING
        logger.info(f"[{self.ctx.sim_time}s] simulation started")
        return True

    def stop(self) -> bool:
        """
        Stop ticking. Returns False if already stopped.

        Responses in flight and crews en route stay queued and resume
        with the next ``start``.
        """
        if not self.running:
            return False
        self.state = ClockState.STOPPED
        logger.info(f"[{self.ctx.sim_time}s] simulation stopped "
                    f"({len(self.link)} responses in flight, "
                    f"{len(self.dispatcher)} crews en route)")
        return True

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Stop and rebuild everything from scratch at time 0.

        Args:
            seed: Reseed the random source first. Without it the stream
                continues, so the new sensor set is drawn fresh.
        """
        self.state = ClockState.STOPPED
        if seed is not None:
            self.ctx.rng.reseed(seed)
        self.link.clear()
        self.dispatcher.clear()
        self.uav.reset()
        self.ctx.reset()
        logger.info(f"Simulation reset (seed={self.ctx.rng.seed})")

    def inject_fault(self, sensor_id: Optional[int] = None) -> Optional[Alert]:
        """
        Force a high-severity manual fault and send a crew straight away.

        Without ``sensor_id`` a sensor is picked at random. A sensor that
        already has a fault, or that a crew is still heading to, is left
        alone and None is returned.

        Raises:
            InvalidSensorId: If ``sensor_id`` is out of range
        """
        network = self.ctx.network
        if sensor_id is None:
            sensor_id = self.ctx.rng.index(len(network))
        else:
            sensor_id = network.get(sensor_id).sensor_id

        now = self.ctx.sim_time
        if self.dispatcher.crew_for(sensor_id) is not None:
            self.ctx.metrics.skipped_injections += 1
            logger.warning(f"[{now}s] manual injection skipped: "
                           f"crew already en route to sensor {sensor_id}")
            return None
        try:
            network.inject_fault(sensor_id, MANUAL_FAULT_KIND, Severity.HIGH)
        except AlreadyFaulted as exc:
            self.ctx.metrics.skipped_injections += 1
            logger.warning(f"[{now}s] manual injection skipped: {exc}")
            return None

        alert = self.ctx.alerts.emit(sensor_id, f"Manual fault injected at sensor {sensor_id}", now)
        self.dispatcher.dispatch(sensor_id, now)
        self.ctx.metrics.manual_faults += 1
        logger.info(f"[{now}s] manual fault injected at sensor {sensor_id}")
        return alert

    # -------------------------------------------------------------------------
    # Ticking
    # -------------------------------------------------------------------------

    def step(self) -> Optional[Snapshot]:
        """Advance one tick. Returns None (and does nothing) while stopped."""
        if not self.running:
            return None

        ctx = self.ctx
        ctx.sim_time += 1
        now = ctx.sim_time
        ctx.metrics.ticks += 1

        self.link.deliver_due(now)
        self.uav.advance()

        if now % self.config.poll_interval == 0:
            self.link.poll(ctx.network.ids(), now)

        self.dispatcher.tick(now)

        snapshot = self.get_snapshot()
        self._notify(snapshot)
        return snapshot

    def run(self, ticks: int) -> List[Snapshot]:
        """
        Start (if needed) and advance ``ticks`` ticks.

        Stops early if an observer stops the clock.
        """
        self.start()
        snapshots = []
        for _ in range(ticks):
            snapshot = self.step()
            if snapshot is None:
                break
            snapshots.append(snapshot)
        return snapshots

    def _raise_detected_fault(self, sensor_id: int, fault: Fault) -> None:
        """Record a fault found by the fault model, alert, and send a crew."""
        now = self.ctx.sim_time
        if self.dispatcher.crew_for(sensor_id) is not None:
            logger.warning(f"[{now}s] detected fault ignored: "
                           f"crew already en route to sensor {sensor_id}")
            return
        try:
            self.ctx.network.inject_fault(sensor_id, fault.kind, fault.severity)
        except AlreadyFaulted as exc:
            logger.warning(f"[{now}s] detected fault ignored: {exc}")
            return

        self.ctx.metrics.faults_detected += 1
        self.ctx.alerts.emit(
            sensor_id,
            f"Fault detected at sensor {sensor_id}: {fault.severity.value} severity",
            now,
        )
        self.dispatcher.dispatch(sensor_id, now)
        logger.info(f"[{now}s] {fault.severity.value} {fault.kind} fault at sensor {sensor_id}")

    def _notify(self, snapshot: Snapshot) -> None:
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception(f"[{snapshot.sim_time}s] snapshot observer failed")
