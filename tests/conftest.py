import asyncio
import json
import logging

import pytest

from mcwatch.config import Settings
from mcwatch.protocol import encode_string, pack_packet, read_packet

SHARED_KEY = "c2VjcmV0LWtleQ=="  # "secret-key"


def make_settings(**overrides) -> Settings:
    values = dict(
        pod_name="pod-a",
        host="127.0.0.1",
        port=25565,
        data_volume="/nonexistent/playerdata",
        azure_customer_id="customer-id",
        azure_shared_key=SHARED_KEY,
        probe_timeout=2.0,
        publish_timeout=2.0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers configure_logging attached so they don't leak between tests."""
    yield
    logger = logging.getLogger("mcwatch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings():
    return make_settings()


class FakeStatusServer:
    """Answers one status handshake per connection with a canned document."""

    def __init__(self, document=None, raw_response=None):
        self.document = document or {
            "version": {"name": "1.20.4", "protocol": 765},
            "players": {"online": 5, "max": 20, "sample": []},
            "description": {"text": "A Minecraft Server"},
        }
        self.raw_response = raw_response
        self.handshakes = []
        self._server = None

    async def _handle(self, reader, writer):
        try:
            self.handshakes.append(await read_packet(reader))
            await read_packet(reader)
            if self.raw_response is not None:
                writer.write(self.raw_response)
            else:
                writer.write(pack_packet(0x00, encode_string(json.dumps(self.document))))
            await writer.drain()
        finally:
            writer.close()

    async def __aenter__(self):
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._server.close()
        await self._server.wait_closed()
