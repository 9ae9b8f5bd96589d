"""
Scheduler.

Runs the probe -> count -> publish pipeline on a fixed-rate timer and
shuts down when the hosting environment sends SIGTERM or SIGINT.
"""

import asyncio
import logging
import signal
from enum import Enum
from typing import Optional

from .config import Settings
from .errors import NetworkError, ProtocolError, SerializationError, StatusConnectionError
from .population import PopulationCounter
from .probe import StatusProbe
from .publisher import Snapshot, TelemetryPublisher

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class SchedulerState(Enum):
    IDLE = "idle"
    TICKING = "ticking"
    SHUTTING_DOWN = "shutting_down"


class Scheduler:
    """
    Owns the polling loop and the shutdown listener.

    Both run as separate tasks coordinated through one shutdown event.
    Ticks never overlap: a tick that overruns the interval delays the
    next one, and fires missed in the meantime are dropped.
    """

    def __init__(
        self,
        settings: Settings,
        probe: StatusProbe,
        counter: PopulationCounter,
        publisher: TelemetryPublisher,
        interval: Optional[float] = None,
    ):
        self.settings = settings
        self.probe = probe
        self.counter = counter
        self.publisher = publisher
        self.interval = interval or settings.interval

        self.state = SchedulerState.IDLE
        self.tick_count = 0
        self._shutdown = asyncio.Event()

    def request_shutdown(self):
        """Ask both tasks to stop. Safe to call from a signal handler."""
        self._shutdown.set()

    async def tick(self) -> Optional[Snapshot]:
        """
        Run the pipeline once.

        Returns the snapshot that was built, or None when the status query
        failed and nothing was published.
        """
        settings = self.settings

        try:
            reply = await self.probe.query(settings.host, settings.port)
        except (StatusConnectionError, ProtocolError) as e:
            logger.error(f"Error while checking server status: {e}")
            return None

        population = await self.counter.count(settings.data_volume)
        logger.info(f"Server population is {population}")

        snapshot = Snapshot(
            pod_name=settings.pod_name,
            online_players=reply.online_players,
            max_players=reply.max_players,
            population=population,
        )

        try:
            await self.publisher.publish(snapshot)
        except (NetworkError, SerializationError) as e:
            logger.error(f"Error while publishing telemetry: {e}")

        return snapshot

    async def _poll_loop(self):
        """Fire tick() at start + k * interval until shutdown."""
        loop = asyncio.get_event_loop()
        next_fire = loop.time() + self.interval

        while not self._shutdown.is_set():
            delay = next_fire - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass
            else:
                # Overran: still hand the loop a turn so signals and shutdown run
                await asyncio.sleep(0)
                if self._shutdown.is_set():
                    break

            try:
                await self.tick()
            except Exception:
                logger.exception("Unexpected error during tick")
            self.tick_count += 1

            now = loop.time()
            next_fire += self.interval
            if next_fire <= now:
                # Overran; fire once as soon as possible, drop the rest
                missed = int((now - next_fire) // self.interval)
                if missed:
                    logger.warning(f"Tick overran the interval, dropping {missed} fire(s)")
                next_fire += missed * self.interval

    async def _shutdown_listener(self, poll_task: asyncio.Task):
        await self._shutdown.wait()
        logger.info("Detected exit signal")
        self.state = SchedulerState.SHUTTING_DOWN
        poll_task.cancel()

    def _on_poll_done(self, task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Polling task died: {task.exception()!r}")
        self._shutdown.set()

    async def run(self, install_signal_handlers: bool = True) -> int:
        """
        Run until shutdown is requested.

        Returns the process exit code: 0 after a requested shutdown, 1 if
        the polling task died on its own.
        """
        if self.state is not SchedulerState.IDLE:
            raise RuntimeError(f"scheduler already {self.state.value}")

        loop = asyncio.get_event_loop()
        if install_signal_handlers:
            for sig in SHUTDOWN_SIGNALS:
                loop.add_signal_handler(sig, self.request_shutdown)

        logger.info(f"Polling {self.settings.address} every {self.interval:g}s")
        self.state = SchedulerState.TICKING

        poll_task = asyncio.create_task(self._poll_loop())
        poll_task.add_done_callback(self._on_poll_done)
        listener_task = asyncio.create_task(self._shutdown_listener(poll_task))

        try:
            await asyncio.wait({poll_task, listener_task})
        finally:
            if install_signal_handlers:
                for sig in SHUTDOWN_SIGNALS:
                    loop.remove_signal_handler(sig)

        if not poll_task.cancelled() and poll_task.exception() is not None:
            return 1
        return 0
