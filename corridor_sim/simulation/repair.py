"""
Repair crew dispatch and completion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from corridor_sim.errors import CrewAlreadyDispatched, NoActiveFault, SimulationError
from corridor_sim.simulation.events import EventQueue

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import SimulationContext

logger = logging.getLogger(__name__)

ETA_RANGE_MINUTES = (10.0, 40.0)


@dataclass(frozen=True)
class RepairCrew:
    """A crew on its way to a faulted sensor."""
    sensor_id: int
    dispatch_time: int
    eta_time: float

    @property
    def duration(self) -> float:
        return self.eta_time - self.dispatch_time


class RepairDispatcher:
    """
    Tracks outstanding crews and resolves faults when they arrive.

    At most one crew is outstanding per sensor, which matches the one
    active fault a sensor can carry.
    """

    def __init__(self, ctx: SimulationContext):
        self.ctx = ctx
        self._queue: EventQueue[RepairCrew] = EventQueue()
        self._by_sensor: Dict[int, RepairCrew] = {}

    def dispatch(self, sensor_id: int, current_time: int) -> RepairCrew:
        """
        Send a crew to ``sensor_id``; it arrives 10-40 minutes from now.

        Raises:
            InvalidSensorId: If the id is out of range
            CrewAlreadyDispatched: If a crew is already heading there
        """
        sensor_id = self.ctx.network.get(sensor_id).sensor_id
        if sensor_id in self._by_sensor:
            raise CrewAlreadyDispatched(sensor_id)

        minutes = self.ctx.rng.between(*ETA_RANGE_MINUTES)
        crew = RepairCrew(
            sensor_id=sensor_id,
            dispatch_time=current_time,
            eta_time=current_time + minutes * 60,
        )
        self._queue.push(crew.eta_time, crew)
        self._by_sensor[sensor_id] = crew
        self.ctx.metrics.crews_dispatched += 1

        logger.debug(f"[{current_time}s] crew dispatched to sensor {sensor_id}, "
                     f"eta {crew.eta_time:.0f}s")
        return crew

    def tick(self, current_time: int) -> List[int]:
        """
        Complete every crew whose ETA has passed.

        Each completion clears the sensor's fault and emits exactly one
        alert, also when the fault was already cleared some other way.

        Returns:
            Ids of the sensors whose crews completed this tick, in ETA order
        """
        completed = []
        for crew in self._queue.pop_due(current_time):
            del self._by_sensor[crew.sensor_id]
            try:
                self.ctx.network.clear_fault(crew.sensor_id)
            except NoActiveFault as exc:
                logger.warning(f"[{current_time}s] crew at sensor {crew.sensor_id} "
                               f"found nothing to repair: {exc}")
            except SimulationError as exc:
                self.ctx.metrics.isolated_errors += 1
                logger.warning(f"[{current_time}s] crew at sensor {crew.sensor_id} failed: {exc}")
                continue

            self.ctx.alerts.emit(
                crew.sensor_id,
                f"Repair completed for sensor {crew.sensor_id}",
                current_time,
            )
            self.ctx.metrics.record_repair(current_time - crew.dispatch_time)
            completed.append(crew.sensor_id)
            logger.info(f"[{current_time}s] sensor {crew.sensor_id} repaired")

        return completed

    def crew_for(self, sensor_id: int) -> Optional[RepairCrew]:
        return self._by_sensor.get(sensor_id)

    def outstanding(self) -> List[RepairCrew]:
        """Crews still en route, soonest first."""
        return list(self._queue)

    def clear(self) -> None:
        self._queue.clear()
        self._by_sensor.clear()

    def __len__(self) -> int:
        return len(self._queue)
