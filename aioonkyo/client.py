"""Module containing the public client for Onkyo/Integra receivers."""
import asyncio
import logging
import weakref

from aioonkyo.connection import ConnectionManager
from aioonkyo.exceptions import ConnectError, ConstructionError
from aioonkyo.protocol import (
    DEFAULT_BAUDRATE,
    DEFAULT_DISCARD_TIMEOUT,
    DEFAULT_PORT,
    DISCOVERY_TIMEOUT,
    command_to_packet,
    text_to_iscp,
)
from aioonkyo.transport import DISCOVER, transport_for_device

__all__ = ("Onkyo",)


def _open_done(task):
    # The error was logged and cleaned up already, wait_open re-raises it
    if not task.cancelled():
        task.exception()


def _release(connection, open_task, reason):
    if not open_task.done():
        open_task.cancel()
    connection.cleanup(reason)


def _release_dropped(loop, connection, open_task):
    if not loop.is_closed():
        _release(connection, open_task, "client released")


class Onkyo:
    """Client controlling one Onkyo/Integra receiver.

    The connection is opened in the background as soon as the client is
    created, so it must be created from a running event loop. Use it as
    an async context manager to wait for the connection and to be sure
    it is cleaned up::

        async with Onkyo("192.168.1.20", callback=print) as receiver:
            await receiver.command("volume up")
    """

    def __init__(
        self,
        device=DISCOVER,
        callback=None,
        port=DEFAULT_PORT,
        discard_timeout=DEFAULT_DISCARD_TIMEOUT,
        baudrate=DEFAULT_BAUDRATE,
        discovery_timeout=DISCOVERY_TIMEOUT,
        disconnect_callback=None,
        loop=None,
    ):
        """Create the client and start connecting.

        :param device:
            ``discover``, ``host[:port]`` or the path of a serial device
        :param callback:
            called as ``callback(command, argument, client)`` for every
            message the receiver sends, required
        :param port:
            TCP port number of the device when ``device`` does not carry one
        :param discard_timeout:
            seconds a partial message may stay buffered before it is dropped
        :param baudrate:
            speed of the serial port
        :param discovery_timeout:
            seconds to wait for discovery replies
        :param disconnect_callback:
            called with the reason when the connection is cleaned up
        :param loop:
            asyncio.loop for async operation

        :raises ConstructionError: if ``callback`` is missing
        """
        if not callback:
            raise ConstructionError(f"{type(self).__name__}: callback parameter is required")

        self.log = logging.getLogger(__name__)
        self._loop = loop or asyncio.get_running_loop()
        self.device = device
        self.callback = callback

        self.transport = transport_for_device(
            device,
            port=port,
            baudrate=baudrate,
            discovery_timeout=discovery_timeout,
            loop=self._loop,
        )

        client_ref = weakref.ref(self)

        def _frame_callback(frame):
            """Function callback for the connection when a message is framed."""
            client = client_ref()
            if client is not None:
                client.callback(frame.command, frame.argument, client)

        self.connection = ConnectionManager(
            _frame_callback,
            framing=self.transport.framing,
            discard_timeout=discard_timeout,
            loop=self._loop,
            disconnect_callback=disconnect_callback,
        )
        self._open_task = self.connection.open(self.transport)
        self._open_task.add_done_callback(_open_done)
        # Safety net for clients dropped without cleanup, holds no reference to self
        self._finalizer = weakref.finalize(
            self, _release_dropped, self._loop, self.connection, self._open_task
        )
        self._finalizer.atexit = False

    @property
    def state(self):
        """The :class:`~aioonkyo.connection.ConnectionState` of the connection."""
        return self.connection.state

    @property
    def host(self):
        return getattr(self.transport, "host", None)

    @property
    def port(self):
        return getattr(self.transport, "port", None)

    async def wait_open(self):
        """Wait until the connection is open.

        :raises ConnectError: if the device could not be reached
        """
        try:
            await asyncio.shield(self._open_task)
        except asyncio.CancelledError:
            if self._open_task.cancelled():
                raise ConnectError(f"Connection to {self.transport} cleaned up before it opened") from None
            raise

    def command(self, text):
        """Send a command to the receiver.

        The command is not answered directly, replies and status changes
        arrive through the callback.

            :param text: a command such as ``volume up``, ``zone2.power=on``
                or a raw ISCP message such as ``PWRQSTN``
            :return: :class:`asyncio.Future` resolved once the command
                has been written to the device
            :raises ValueError: if the command is not known

        :Example:

        >>> await receiver.command("main.volume=40")
        """
        iscp_message = text_to_iscp(text)
        self.log.debug("> %s (%s)", iscp_message, text)
        return self.connection.dispatcher.send(
            command_to_packet(iscp_message, self.transport.framing), text
        )

    def cleanup(self, reason=None):
        """Close the connection. Safe to call any number of times."""
        _release(self.connection, self._open_task, reason)

    async def __aenter__(self):
        await self.wait_open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.cleanup("client closed")
