"""
UAV-to-sensor poll link.

Separates reliability (packet loss) from latency (delay). Each poll of each
sensor is independent: it is either silently lost for good, or its response
is queued to arrive ``delay_ms`` later in simulated time. Responses for the
same sensor from successive polls may be in flight together; none cancels
another, and whichever lands last wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from corridor_sim.errors import SimulationError
from corridor_sim.network import Fault, FaultModel, Reading
from corridor_sim.simulation.events import EventQueue

if TYPE_CHECKING:
    from corridor_sim.simulation.engine import SimulationContext

logger = logging.getLogger(__name__)

MS_PER_TICK = 1000.0

FaultHandler = Callable[[int, Fault], None]


@dataclass(frozen=True)
class PendingDelivery:
    """
    An in-flight poll response.

    Attributes:
        sensor_id: Sensor that answered
        poll_time: Tick the poll was sent
        delay_ms: One-way latency drawn for this response
        due_time: Simulated second the response arrives
    """
    sensor_id: int
    poll_time: int
    delay_ms: float
    due_time: float


class PollLink:
    """
    Lossy, variable-latency channel between the UAV and the sensors.

    Scheduled responses sit in an ``EventQueue`` until the clock calls
    ``deliver_due``; stopping the clock leaves them queued.
    """

    def __init__(self, ctx: SimulationContext, fault_model: FaultModel,
                 on_fault: Optional[FaultHandler] = None):
        self.ctx = ctx
        self.fault_model = fault_model
        self.on_fault = on_fault
        self._queue: EventQueue[PendingDelivery] = EventQueue()

    def packet_lost(self) -> bool:
        """Draw once against the configured loss rate."""
        return self.ctx.rng.uniform() <= self.ctx.config.packet_loss_rate

    def poll(self, sensor_ids: Iterable[int], current_time: int) -> List[PendingDelivery]:
        """
        Poll every sensor in ``sensor_ids`` and queue the surviving responses.

        Ids are validated before anything is drawn or queued, so a bad id
        leaves the link untouched.

        Returns:
            The deliveries scheduled by this poll, in sensor order
        """
        sensor_ids = [self.ctx.network.get(sensor_id).sensor_id for sensor_id in sensor_ids]

        config = self.ctx.config
        rng = self.ctx.rng
        metrics = self.ctx.metrics
        scheduled = []

        for sensor_id in sensor_ids:
            metrics.polls_sent += 1
            if self.packet_lost():
                metrics.polls_dropped += 1
                logger.debug(f"[{current_time}s] poll of sensor {sensor_id} lost")
                continue

            delay_ms = rng.between(config.latency_min_ms, config.latency_max_ms)
            delivery = PendingDelivery(
                sensor_id=sensor_id,
                poll_time=current_time,
                delay_ms=delay_ms,
                due_time=current_time + delay_ms / MS_PER_TICK,
            )
            self._queue.push(delivery.due_time, delivery)
            scheduled.append(delivery)
            logger.debug(f"[{current_time}s] response from sensor {sensor_id} "
                         f"due at {delivery.due_time:.3f}s")

        return scheduled

    def deliver_due(self, current_time: int) -> List[PendingDelivery]:
        """
        Apply every response whose due time has been reached.

        A failure on one delivery is logged and counted; the remaining
        deliveries are still applied.

        Returns:
            The deliveries that were applied
        """
        applied = []
        for delivery in self._queue.pop_due(current_time):
            try:
                self._apply(delivery, current_time)
            except SimulationError as exc:
                self.ctx.metrics.isolated_errors += 1
                logger.warning(f"[{current_time}s] delivery for sensor "
                               f"{delivery.sensor_id} dropped: {exc}")
                continue
            applied.append(delivery)
        return applied

    def _apply(self, delivery: PendingDelivery, current_time: int) -> None:
        network = self.ctx.network
        rng = self.ctx.rng
        level = self.ctx.config.noise_level

        sensor = network.get(delivery.sensor_id)
        reading = Reading(
            temperature=rng.noisy(sensor.reading.temperature, level),
            vibration=rng.noisy(sensor.reading.vibration, level),
        )
        network.apply_reading(delivery.sensor_id, reading)
        self.ctx.metrics.record_delivery(delivery.delay_ms)

        fault = self.fault_model.evaluate(sensor, current_time)
        if fault is not None and self.on_fault is not None:
            self.on_fault(delivery.sensor_id, fault)

    def pending(self) -> List[PendingDelivery]:
        """Responses still in flight, in arrival order."""
        return list(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)
