"""
mcwatch - Minecraft server telemetry sidecar.

Polls a server's status protocol, counts player-data files and pushes
signed records to Azure Log Analytics.
"""

from .agent import MonitorAgent, run_agent
from .config import Settings, load_settings
from .population import PopulationCounter
from .probe import StatusProbe
from .protocol import StatusReply
from .publisher import PublishResult, Snapshot, TelemetryPublisher
from .scheduler import Scheduler, SchedulerState
from .signing import sign

__all__ = [
    "MonitorAgent",
    "run_agent",
    "Settings",
    "load_settings",
    "PopulationCounter",
    "StatusProbe",
    "StatusReply",
    "PublishResult",
    "Snapshot",
    "TelemetryPublisher",
    "Scheduler",
    "SchedulerState",
    "sign",
]
