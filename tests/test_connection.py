"""Tests for the connection handler: framing, pacing, discard and cleanup."""

import asyncio

import pytest

from aioonkyo.connection import ConnectionManager, ConnectionState
from aioonkyo.exceptions import ConnectError
from aioonkyo.protocol import Frame


class FailingOpener:
    framing = "eISCP"

    async def open(self, protocol_factory):
        raise ConnectError("Can't connect to device")


def test_open_wires_transport(opener, transport):
    async def scenario():
        conn = ConnectionManager(lambda frame: None)
        assert conn.state is ConnectionState.CLOSED
        task = conn.open(opener)
        assert conn.state is ConnectionState.OPENING
        await task
        assert conn.state is ConnectionState.OPEN
        assert conn.transport is transport
        assert conn.dispatcher.transport is transport
        conn.cleanup()

    asyncio.run(scenario())


def test_frames_delivered_in_order(opener, packet):
    async def scenario():
        frames = []
        conn = ConnectionManager(frames.append)
        await conn.open(opener)
        conn.data_received(packet("PWR01") + packet("PWR00") + packet("MVL28")[:18])
        await asyncio.sleep(0)
        assert frames == [Frame("PWR", "01"), Frame("PWR", "00")]
        assert bytes(conn.buffer) == packet("MVL28")[:18]

        conn.data_received(packet("MVL28")[18:])
        await asyncio.sleep(0)
        assert frames[-1] == Frame("MVL", "28")
        assert conn.buffer == bytearray()
        conn.cleanup()

    asyncio.run(scenario())


def test_commands_before_open_are_paced(opener, transport, packet):
    async def scenario():
        conn = ConnectionManager(lambda frame: None)
        task = conn.open(opener)
        first = conn.dispatcher.send(b"one", "volume up")
        second = conn.dispatcher.send(b"two", "power on")
        assert transport.written == []

        await task
        assert transport.written == [b"one"]
        assert first.done() and not second.done()

        # Each received frame is a write opportunity
        conn.data_received(packet("MVL29"))
        assert transport.written == [b"one", b"two"]
        assert second.done()
        conn.cleanup()

    asyncio.run(scenario())


def test_discard_timeout_drops_partial_frame(opener, packet):
    async def scenario():
        conn = ConnectionManager(lambda frame: None, discard_timeout=0.01)
        await conn.open(opener)
        conn.data_received(packet("PWR01")[:12])
        assert conn.buffer
        await asyncio.sleep(0.05)
        assert conn.buffer == bytearray()
        assert conn._discard_timer is None
        conn.cleanup()

    asyncio.run(scenario())


def test_discard_timeout_drops_noise(opener):
    async def scenario():
        conn = ConnectionManager(lambda frame: None, discard_timeout=0.01)
        await conn.open(opener)
        conn.data_received(b"\x00\x01line noise")
        await asyncio.sleep(0.05)
        assert conn.buffer == bytearray()
        conn.cleanup()

    asyncio.run(scenario())


def test_complete_frame_disarms_discard_timer(opener, packet):
    async def scenario():
        frames = []
        conn = ConnectionManager(frames.append, discard_timeout=0.05)
        await conn.open(opener)
        data = packet("PWR01")
        conn.data_received(data[:10])
        assert conn._discard_timer is not None
        conn.data_received(data[10:])
        assert conn._discard_timer is None
        await asyncio.sleep(0.1)
        assert frames == [Frame("PWR", "01")]
        conn.cleanup()

    asyncio.run(scenario())


def test_eof_closes_connection(opener, transport):
    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        await conn.open(opener)
        conn.eof_received()
        assert conn.state is ConnectionState.CLOSED
        assert transport.closed
        assert conn.transport is None

        late = conn.dispatcher.send(b"one", "one")
        assert isinstance(late.exception(), ConnectError)
        assert len(conn.dispatcher) == 0
        conn.connection_lost(None)
        await asyncio.sleep(0)
        assert transport.written == []
        assert reasons == ["connection closed"]

    asyncio.run(scenario())


def test_connection_lost_without_error(opener):
    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        await conn.open(opener)
        conn.connection_lost(None)
        await asyncio.sleep(0)
        assert conn.state is ConnectionState.CLOSED
        assert conn.reason == "connection closed"
        assert reasons == ["connection closed"]

    asyncio.run(scenario())


def test_fatal_error_cleans_up_once(opener, transport):
    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        await conn.open(opener)
        conn.connection_lost(ConnectionResetError("reset by peer"))
        assert transport.aborted
        assert conn.state is ConnectionState.CLOSED

        conn.cleanup("explicit")
        conn.cleanup()
        await asyncio.sleep(0)
        assert reasons == ["reset by peer"]
        assert conn.reason == "reset by peer"

    asyncio.run(scenario())


def test_non_fatal_error_closes_once_handle_is_lost(opener, transport):
    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        await conn.open(opener)
        conn.error(OSError("glitch"))
        assert transport.aborted
        assert conn.transport is None
        assert conn.state is ConnectionState.OPEN

        # The transport reports the loss of the aborted handle afterwards
        conn.connection_lost(OSError("glitch"))
        await asyncio.sleep(0)
        assert conn.state is ConnectionState.CLOSED
        assert reasons == ["glitch"]

    asyncio.run(scenario())


def test_cleanup_is_idempotent(opener, transport, packet):
    async def scenario():
        reasons = []
        conn = ConnectionManager(
            lambda frame: None, discard_timeout=10, disconnect_callback=reasons.append
        )
        await conn.open(opener)
        conn.data_received(packet("PWR01")[:5])
        conn.cleanup("first")
        state = (conn.state, conn.transport, bytes(conn.buffer), conn._discard_timer)
        conn.cleanup("second")
        assert (conn.state, conn.transport, bytes(conn.buffer), conn._discard_timer) == state
        assert state == (ConnectionState.CLOSED, None, b"", None)
        await asyncio.sleep(0)
        assert reasons == ["first"]

    asyncio.run(scenario())


def test_no_frames_after_cleanup(opener, packet):
    async def scenario():
        frames = []
        conn = ConnectionManager(frames.append)
        await conn.open(opener)
        conn.cleanup()
        conn.data_received(packet("PWR01"))
        await asyncio.sleep(0)
        assert frames == []

    asyncio.run(scenario())


def test_cleanup_while_opening_closes_late_transport(opener, transport):
    async def scenario():
        conn = ConnectionManager(lambda frame: None)
        task = conn.open(opener)
        conn.cleanup("gave up")
        await task
        assert transport.closed
        assert conn.transport is None
        assert conn.state is ConnectionState.CLOSED

    asyncio.run(scenario())


def test_open_failure_cleans_up():
    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        queued = conn.dispatcher.send(b"one", "one")
        with pytest.raises(ConnectError):
            await conn.open(FailingOpener())
        await asyncio.sleep(0)
        assert conn.state is ConnectionState.CLOSED
        assert reasons == ["Can't connect to device"]
        assert isinstance(queued.exception(), ConnectError)

    asyncio.run(scenario())


def test_unexpected_open_error_cleans_up():
    class BrokenOpener:
        framing = "eISCP"

        def __str__(self):
            return "broken"

        async def open(self, protocol_factory):
            raise RuntimeError("resolver exploded")

    async def scenario():
        reasons = []
        conn = ConnectionManager(lambda frame: None, disconnect_callback=reasons.append)
        queued = conn.dispatcher.send(b"one", "one")
        with pytest.raises(ConnectError) as excinfo:
            await conn.open(BrokenOpener())
        await asyncio.sleep(0)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert conn.state is ConnectionState.CLOSED
        assert reasons == ["resolver exploded"]
        assert isinstance(queued.exception(), ConnectError)

    asyncio.run(scenario())
