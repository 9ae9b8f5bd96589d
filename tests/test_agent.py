import asyncio
import json

from aiohttp import web
from aiohttp import test_utils

from mcwatch.agent import MonitorAgent, run_agent

from .conftest import FakeStatusServer, make_settings


def test_tick_end_to_end(tmp_path):
    for i in range(7):
        (tmp_path / f"player-{i}.dat").write_bytes(b"")

    received = []

    async def handle(request):
        received.append(json.loads(await request.read()))
        return web.Response(status=200)

    app = web.Application()
    app.router.add_post("/api/logs", handle)

    async def run():
        async with FakeStatusServer() as status_server, \
                test_utils.TestServer(app, host="127.0.0.1") as collector:
            settings = make_settings(
                port=status_server.port,
                data_volume=str(tmp_path),
                collector_url=str(collector.make_url("/")),
            )
            agent = MonitorAgent(settings)
            try:
                return await agent.scheduler.tick()
            finally:
                await agent.publisher.close()

    snapshot = asyncio.run(run())

    assert snapshot.population == 7
    assert received == [{"PodName": "pod-a", "OnlinePlayers": 5, "MaxPlayers": 20, "Population": 7}]


def test_agent_start_returns_zero_on_shutdown():
    agent = MonitorAgent(make_settings(interval=60))

    async def run():
        asyncio.get_event_loop().call_later(0.05, agent.scheduler.request_shutdown)
        return await agent.start(install_signal_handlers=False)

    assert asyncio.run(run()) == 0


def test_run_agent_exits_nonzero_on_bad_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RCON_AZURE_CUSTOMER_ID", raising=False)
    monkeypatch.delenv("RCON_AZURE_SHARED_KEY", raising=False)
    assert run_agent() == 1
