"""
mcwatch Agent - Main Daemon.

Sidecar that polls a Minecraft server and ships player statistics to
Azure Log Analytics.
"""

import asyncio
import logging
import sys
from typing import Optional

from .config import Settings, load_settings
from .errors import ConfigError
from .population import PopulationCounter
from .probe import StatusProbe
from .publisher import TelemetryPublisher
from .scheduler import Scheduler
from .utils import configure_logging

logger = logging.getLogger(__name__)


class MonitorAgent:
    """Wires the pipeline components to one set of settings."""

    def __init__(self, settings: Settings):
        self.settings = settings

        self.probe = StatusProbe(timeout=settings.probe_timeout)
        self.counter = PopulationCounter()
        self.publisher = TelemetryPublisher.from_settings(settings)
        self.scheduler = Scheduler(settings, self.probe, self.counter, self.publisher)

    async def start(self, install_signal_handlers: bool = True) -> int:
        """Run until shutdown and return the exit code."""
        logger.info(f"Starting mcwatch for pod {self.settings.pod_name}")
        logger.info(f"Collector endpoint: {self.settings.collector_endpoint}")

        try:
            return await self.scheduler.run(install_signal_handlers=install_signal_handlers)
        finally:
            await self.publisher.close()
            logger.info("mcwatch stopped")


def run_agent(config_path: Optional[str] = None) -> int:
    """Load settings, run the agent and return the process exit code."""
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        configure_logging()
        logger.error(str(e))
        return 1

    configure_logging(settings.log_level, settings.log_file)
    agent = MonitorAgent(settings)

    try:
        return asyncio.run(agent.start())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(run_agent(config_path))
