"""Shared fixtures: fake transports and receiver-side packets."""

import asyncio

import pytest

from aioonkyo.protocol import ETHERNET, eISCPPacket


class FakeTransport:
    """Records what the connection does with its asyncio transport."""

    def __init__(self):
        self.written = []
        self.closed = False
        self.aborted = False

    def write(self, data):
        self.written.append(data)

    def is_closing(self):
        return self.closed or self.aborted

    def close(self):
        self.closed = True

    def abort(self):
        self.aborted = True


class FakeOpener:
    """Opens a connection onto a FakeTransport, like aioonkyo.transport does."""

    framing = ETHERNET

    def __init__(self, transport):
        self.transport = transport

    def __str__(self):
        return "fake"

    async def open(self, protocol_factory):
        protocol = protocol_factory()
        protocol.connection_made(self.transport)
        return self.transport, protocol


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def opener(transport):
    return FakeOpener(transport)


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def packet():
    """Build an eISCP packet the way receivers send them."""

    def build(message):
        return eISCPPacket("!1{}\x1a\r\n".format(message)).get_raw()

    return build
