"""
Exceptions raised by the corridor patrol simulation.

None of these are fatal to the tick loop: the clock catches them per
delivery or per crew, logs them, and carries on with the rest of the tick.
"""


class SimulationError(Exception):
    """Base class for recoverable simulation errors."""


class InvalidSensorId(SimulationError, KeyError):
    """Raised when a sensor id is outside the network's range."""

    def __init__(self, sensor_id: object, count: int):
        self.sensor_id = sensor_id
        self.count = count
        super().__init__(f"sensor id {sensor_id!r} out of range (0..{count - 1})")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class AlreadyFaulted(SimulationError):
    """Raised when a fault is injected on a sensor that already has one."""

    def __init__(self, sensor_id: int):
        self.sensor_id = sensor_id
        super().__init__(f"sensor {sensor_id} already has an active fault")


class NoActiveFault(SimulationError):
    """Raised when clearing a fault on a sensor that has none."""

    def __init__(self, sensor_id: int):
        self.sensor_id = sensor_id
        super().__init__(f"sensor {sensor_id} has no active fault")


class CrewAlreadyDispatched(SimulationError):
    """Raised when a second crew is dispatched to the same sensor."""

    def __init__(self, sensor_id: int):
        self.sensor_id = sensor_id
        super().__init__(f"a repair crew is already outstanding for sensor {sensor_id}")
