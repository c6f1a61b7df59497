"""Transports that carry the ISCP byte stream: TCP, serial and discover-then-TCP."""
import asyncio
import logging
import re

import serial
from serial_asyncio_fast import create_serial_connection

from aioonkyo.discovery import discover
from aioonkyo.exceptions import ConnectError
from aioonkyo.protocol import (
    DEFAULT_BAUDRATE,
    DEFAULT_PORT,
    DISCOVERY_TIMEOUT,
    ETHERNET,
    SERIAL,
)

__all__ = (
    "DISCOVER",
    "DiscoverTransport",
    "SerialTransport",
    "TCPTransport",
    "transport_for_device",
)

DISCOVER = "discover"


class Transport:
    """Opens an asyncio transport for a protocol.

    Subclasses implement :meth:`open`, which resolves once the protocol's
    ``connection_made`` has been called and raises :class:`ConnectError`
    when the device cannot be reached.
    """

    framing = ETHERNET

    def __init__(self, loop=None):
        self._loop = loop or asyncio.get_running_loop()
        self.log = logging.getLogger(__name__)

    async def open(self, protocol_factory):
        raise NotImplementedError


class TCPTransport(Transport):
    """eISCP over a TCP connection."""

    def __init__(self, host, port=DEFAULT_PORT, loop=None):
        if port < 0:
            raise ValueError("Invalid port value: %r" % (port))
        super().__init__(loop)
        self.host = host
        self.port = port

    def __str__(self):
        return f"{self.host}:{self.port}"

    async def open(self, protocol_factory):
        self.log.debug("Connecting to Network Receiver at %s:%d", self.host, self.port)
        try:
            return await self._loop.create_connection(protocol_factory, self.host, self.port)
        except (OSError, UnicodeError) as error:
            # UnicodeError: host names that IDNA cannot encode
            raise ConnectError(f"Can't connect to device {self}: {error}") from error


class SerialTransport(Transport):
    """ISCP over an RS-232 port, 8N1."""

    framing = SERIAL

    def __init__(self, url, baudrate=DEFAULT_BAUDRATE, loop=None):
        super().__init__(loop)
        self.url = url
        self.baudrate = baudrate

    def __str__(self):
        return self.url

    async def open(self, protocol_factory):
        self.log.debug("Opening %s as serial port at %d baud", self.url, self.baudrate)
        try:
            return await create_serial_connection(
                self._loop,
                protocol_factory,
                self.url,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except (OSError, serial.SerialException) as error:
            raise ConnectError(f"Can't open serial device {self}: {error}") from error


class DiscoverTransport(TCPTransport):
    """Finds a receiver on the local network, then connects to it over TCP."""

    def __init__(self, port=DEFAULT_PORT, timeout=DISCOVERY_TIMEOUT, loop=None):
        super().__init__(None, port, loop)
        self.timeout = timeout

    def __str__(self):
        if self.host is None:
            return DISCOVER
        return super().__str__()

    async def open(self, protocol_factory):
        receivers = await discover(
            port=self.port, timeout=self.timeout, first=True, loop=self._loop
        )
        if not receivers:
            raise ConnectError(f"No receiver discovered within {self.timeout} seconds")
        receiver = receivers[0]
        self.log.info("Using %s at %s:%d", receiver.model_name, receiver.host, receiver.port)
        self.host, self.port = receiver.host, receiver.port
        return await super().open(protocol_factory)


def is_serial_device(device):
    """Tell whether ``device`` names a serial port rather than a host."""
    return "/" in device or re.fullmatch(r"COM\d+", device, re.IGNORECASE) is not None


def transport_for_device(
    device,
    port=DEFAULT_PORT,
    baudrate=DEFAULT_BAUDRATE,
    discovery_timeout=DISCOVERY_TIMEOUT,
    loop=None,
):
    """Pick the transport for a device address.

    :param device:
        ``discover``, ``host`` or ``host:port`` for TCP, or the path of a
        serial device such as ``/dev/ttyUSB0``
    :param port:
        TCP port used when ``device`` does not carry one
    """
    if device == DISCOVER:
        return DiscoverTransport(port, discovery_timeout, loop)
    if is_serial_device(device):
        return SerialTransport(device, baudrate, loop)
    host, _, device_port = device.rpartition(":")
    if not host:
        return TCPTransport(device, port, loop)
    try:
        return TCPTransport(host, int(device_port), loop)
    except ValueError:
        raise ValueError(f"Invalid port in device {device!r}") from None
