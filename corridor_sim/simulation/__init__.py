"""
Simulation engine for the corridor patrol model.
"""

from .alerts import Alert, AlertFeed, format_sim_time
from .config import LINK_PROFILES, LinkProfile, SimulationConfig
from .engine import (
    ClockState,
    SensorSnapshot,
    SimulationClock,
    SimulationContext,
    Snapshot,
)
from .events import EventQueue
from .link import PendingDelivery, PollLink
from .metrics import SimulationMetrics, fault_risk_profile
from .repair import RepairCrew, RepairDispatcher
from .uav import UAV, UAVState

__all__ = [
    "Alert",
    "AlertFeed",
    "format_sim_time",
    "LINK_PROFILES",
    "LinkProfile",
    "SimulationConfig",
    "ClockState",
    "SensorSnapshot",
    "SimulationClock",
    "SimulationContext",
    "Snapshot",
    "EventQueue",
    "PendingDelivery",
    "PollLink",
    "SimulationMetrics",
    "fault_risk_profile",
    "RepairCrew",
    "RepairDispatcher",
    "UAV",
    "UAVState",
]
