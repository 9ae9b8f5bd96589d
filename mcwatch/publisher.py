"""
Telemetry Publisher.

Serializes snapshots and posts them, signed, to the Log Analytics
HTTP Data Collector endpoint. One attempt per snapshot; no retries.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .config import COLLECTOR_RESOURCE, Settings
from .errors import NetworkError, SerializationError
from .signing import CONTENT_TYPE, sign_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Telemetry record produced by one tick."""
    pod_name: str
    online_players: int
    max_players: int
    population: int

    def to_dict(self) -> dict:
        """Wire representation; key names and order are fixed."""
        return {
            "PodName": self.pod_name,
            "OnlinePlayers": self.online_players,
            "MaxPlayers": self.max_players,
            "Population": self.population,
        }

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_dict(), separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"cannot serialize snapshot: {e}") from e


@dataclass
class PublishResult:
    """Outcome of a publish call."""
    status_code: int
    body: str = ""

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


class TelemetryPublisher:
    """
    Posts snapshots to the collector endpoint.

    Non-2xx responses are logged and returned; connection failures and
    timeouts raise NetworkError.
    """

    def __init__(
        self,
        endpoint: str,
        customer_id: str,
        shared_key: str,
        log_type: str = "MinecraftStats",
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.customer_id = customer_id
        self.shared_key = shared_key
        self.log_type = log_type
        self.timeout = timeout

        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelemetryPublisher":
        return cls(
            endpoint=settings.collector_endpoint,
            customer_id=settings.azure_customer_id,
            shared_key=settings.azure_shared_key,
            log_type=settings.log_type,
            timeout=settings.publish_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def _get_headers(self, content_length: int) -> dict:
        """Signed request headers."""
        signed = sign_request(
            self.customer_id,
            self.shared_key,
            content_length,
            method="POST",
            resource=COLLECTOR_RESOURCE,
        )
        return {
            'Content-Type': CONTENT_TYPE,
            'Authorization': signed.authorization,
            'Log-Type': self.log_type,
            'x-ms-date': signed.date,
        }

    async def publish(self, snapshot: Snapshot) -> PublishResult:
        """Send one snapshot."""
        body = snapshot.to_json().encode("utf-8")
        headers = self._get_headers(len(body))

        try:
            session = await self._get_session()
            async with session.post(self.endpoint, data=body, headers=headers) as response:
                text = await response.text(errors="replace")
                result = PublishResult(status_code=response.status, body=text[:500])
        except asyncio.TimeoutError as e:
            raise NetworkError(f"timed out posting to {self.endpoint}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"cannot post to {self.endpoint}: {e}") from e

        if result.success:
            logger.info(f"Published snapshot: status={result.status_code} body={result.body!r}")
        else:
            logger.warning(f"Collector rejected snapshot: status={result.status_code} body={result.body!r}")
        return result

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
