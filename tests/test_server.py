"""
Server Loop Tests
=================

Startup, accept loop and teardown against fake capabilities.
"""

import asyncio

import pytest

from fakes import (
    FakeAdapter,
    FakeBroadcaster,
    FakeRegistrar,
    FakeRequest,
    FakeStream,
    wait_until,
)
from ornithology_pi.bluetooth import SERVICE_NAME, SERVICE_UUID
from ornithology_pi.errors import AdapterError
from ornithology_pi.models import CountRequest, Ping
from ornithology_pi.protocol import encode_message
from ornithology_pi.server import ServerLoop
from ornithology_pi.sightings import SightingsStore


STARTUP = [
    "power_on",
    "make_discoverable:0",
    "set_pairable:False",
    "register_pairing_agent",
    "broadcast_start",
    "register_endpoint",
]

TEARDOWN = [
    "broadcast_stop",
    "unregister_endpoint",
    "unregister_pairing_agent",
]


def build(events, thumbnails, adapter_fail=None, broadcast_fail=None, **kwargs):
    adapter = FakeAdapter(events, fail_on=adapter_fail)
    broadcaster = FakeBroadcaster(events, fail_on=broadcast_fail)
    registrar = FakeRegistrar(events)
    server = ServerLoop(
        adapter,
        broadcaster,
        registrar,
        SightingsStore(),
        thumbnails,
        teardown_grace=0,
        **kwargs,
    )
    return server, broadcaster, registrar


class TestLifecycle:

    def test_startup_then_teardown_on_stop(self, thumbnails):
        events = []

        async def scenario():
            server, broadcaster, registrar = build(events, thumbnails)
            task = asyncio.create_task(server.run())

            await asyncio.wait_for(registrar.registered.wait(), timeout=2.0)
            assert broadcaster.local_name == SERVICE_NAME
            assert broadcaster.service_uuids == [SERVICE_UUID]

            server.stop()
            await asyncio.wait_for(task, timeout=2.0)

        asyncio.run(scenario())
        assert events == STARTUP + TEARDOWN

    def test_adapter_failure_aborts_startup(self, thumbnails):
        events = []

        async def scenario():
            server, _, _ = build(events, thumbnails, adapter_fail="set_pairable:False")
            await server.run()

        with pytest.raises(AdapterError, match="disable pairing"):
            asyncio.run(scenario())
        # Nothing was registered, so nothing is released
        assert events == STARTUP[:3]

    def test_partial_startup_is_rolled_back(self, thumbnails):
        events = []

        async def scenario():
            server, _, _ = build(events, thumbnails, broadcast_fail="broadcast_start")
            await server.run()

        with pytest.raises(AdapterError, match="start advertising"):
            asyncio.run(scenario())
        assert events == STARTUP[:5] + ["unregister_pairing_agent"]

    def test_released_endpoint_ends_loop(self, thumbnails):
        events = []

        async def scenario():
            server, _, registrar = build(events, thumbnails)
            registrar.push(None)
            await asyncio.wait_for(server.run(), timeout=2.0)

        asyncio.run(scenario())
        assert events == STARTUP + TEARDOWN


class TestAcceptLoop:

    def test_accept_failure_keeps_listening(self, thumbnails):
        events = []

        async def scenario():
            server, _, registrar = build(events, thumbnails)
            task = asyncio.create_task(server.run())

            stream = FakeStream([encode_message(Ping())])
            registrar.push(FakeRequest(fail=True))
            registrar.push(FakeRequest(stream))

            await asyncio.wait_for(stream.closed.wait(), timeout=2.0)
            server.stop()
            await asyncio.wait_for(task, timeout=2.0)
            return stream.written

        assert asyncio.run(scenario()) == [b"0", b'"Pong"']

    def test_connections_are_served_concurrently(self, thumbnails):
        events = []

        async def scenario():
            server, _, registrar = build(events, thumbnails)
            task = asyncio.create_task(server.run())

            idle = FakeStream(peer="11:11:11:11:11:11", hold_open=True)
            busy = FakeStream(peer="22:22:22:22:22:22", hold_open=True)
            registrar.push(FakeRequest(idle, device=idle.peer))
            registrar.push(FakeRequest(busy, device=busy.peer))

            await wait_until(lambda: idle.written and busy.written)
            assert server.active_connections == 2

            # The second client is answered while the first sits idle
            busy.feed(encode_message(CountRequest()))
            await wait_until(lambda: len(busy.written) == 2)
            assert idle.written == [b"0"]

            server.stop()
            await asyncio.wait_for(task, timeout=2.0)

            assert idle.closed.is_set()
            assert busy.closed.is_set()
            assert server.active_connections == 0

        asyncio.run(scenario())
        assert events == STARTUP + TEARDOWN

    def test_finished_connection_is_forgotten(self, thumbnails):
        events = []

        async def scenario():
            server, _, registrar = build(events, thumbnails)
            task = asyncio.create_task(server.run())

            stream = FakeStream()
            registrar.push(FakeRequest(stream))
            await asyncio.wait_for(stream.closed.wait(), timeout=2.0)
            await wait_until(lambda: server.active_connections == 0)

            server.stop()
            await asyncio.wait_for(task, timeout=2.0)

        asyncio.run(scenario())

    def test_cancelled_serve_leaves_no_pending_request(self, thumbnails):
        events = []

        async def scenario():
            server, _, registrar = build(events, thumbnails)
            await server.start()
            serve_task = asyncio.create_task(server.serve())
            await asyncio.sleep(0.01)

            serve_task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await serve_task

            # Nothing is left waiting on the registrar to swallow this one
            registrar.push(FakeRequest(FakeStream()))
            await asyncio.sleep(0.01)
            assert registrar.requests.qsize() == 1

            await server.teardown()

        asyncio.run(scenario())
        assert events == STARTUP + TEARDOWN


class BrokenStore(SightingsStore):

    async def length(self) -> int:
        raise RuntimeError("store unavailable")


class TestConnectionFaults:

    def test_handler_fault_is_logged_with_traceback(self, thumbnails, caplog):
        events = []

        async def scenario():
            registrar = FakeRegistrar(events)
            server = ServerLoop(
                FakeAdapter(events),
                FakeBroadcaster(events),
                registrar,
                BrokenStore(),
                thumbnails,
                teardown_grace=0,
            )
            task = asyncio.create_task(server.run())

            stream = FakeStream(hold_open=True)
            registrar.push(FakeRequest(stream))
            await asyncio.wait_for(stream.closed.wait(), timeout=2.0)

            server.stop()
            await asyncio.wait_for(task, timeout=2.0)

        asyncio.run(scenario())

        records = [r for r in caplog.records if r.name == "ornithology_pi.server"]
        failures = [r for r in records if "failed" in r.getMessage()]
        assert failures
        assert failures[0].exc_info is not None
        assert "store unavailable" in failures[0].getMessage()
