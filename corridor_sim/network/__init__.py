"""
Sensor network model: sensors, their faults, and the shared random source.
"""

from .random_source import RandomSource
from .sensors import Fault, Reading, Sensor, SensorNetwork, Severity
from .faults import FaultModel, classify_severity

__all__ = [
    "RandomSource",
    "Fault",
    "Reading",
    "Sensor",
    "SensorNetwork",
    "Severity",
    "FaultModel",
    "classify_severity",
]
