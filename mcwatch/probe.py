"""
Status Probe.

Queries a Minecraft server over the Server List Ping protocol.
"""

import asyncio
import logging

from .errors import StatusConnectionError
from .protocol import (
    StatusReply,
    handshake_packet,
    parse_status_packet,
    read_packet,
    status_request_packet,
)

logger = logging.getLogger(__name__)


class StatusProbe:
    """Opens one connection per query and returns the decoded status."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def query(self, host: str, port: int) -> StatusReply:
        """
        Perform the status handshake against host:port.

        Raises StatusConnectionError when the server cannot be reached or
        stops answering, and ProtocolError when the reply is malformed.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StatusConnectionError(f"timed out connecting to {host}:{port}") from e
        except OSError as e:
            raise StatusConnectionError(f"cannot connect to {host}:{port}: {e}") from e

        try:
            return await asyncio.wait_for(
                self._exchange(reader, writer, host, port),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StatusConnectionError(f"no status reply from {host}:{port}") from e
        except OSError as e:
            raise StatusConnectionError(f"connection to {host}:{port} failed: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing connection to {host}:{port}: {e}")

    async def _exchange(self, reader, writer, host: str, port: int) -> StatusReply:
        writer.write(handshake_packet(host, port))
        writer.write(status_request_packet())
        await writer.drain()

        packet_id, payload = await read_packet(reader)
        reply = parse_status_packet(packet_id, payload)
        logger.debug(
            f"Status from {host}:{port}: {reply.online_players}/{reply.max_players} "
            f"players, version {reply.version_name!r}"
        )
        return reply
