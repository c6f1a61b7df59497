"""Module containing the connection handler for the receiver byte stream."""
import asyncio
import enum
import logging

from aioonkyo.dispatcher import CommandQueue
from aioonkyo.exceptions import ConnectError
from aioonkyo.protocol import DEFAULT_DISCARD_TIMEOUT, ETHERNET, FrameReader

__all__ = ("ConnectionManager", "ConnectionState")

CONNECTION_CLOSED = "connection closed"


class ConnectionState(enum.Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


# pylint: disable=too-many-instance-attributes
class ConnectionManager(asyncio.Protocol):
    """The ISCP protocol handler for one receiver connection."""

    def __init__(
        self,
        frame_callback,
        framing=ETHERNET,
        discard_timeout=DEFAULT_DISCARD_TIMEOUT,
        loop=None,
        disconnect_callback=None,
    ):
        """Protocol handler that frames the receiver byte stream.

        This class is expected to be wrapped inside an Onkyo client object,
        which picks the transport and handles the user facing API.

            :param frame_callback:
                called with every :class:`~aioonkyo.protocol.Frame` received
            :param framing:
                ``eISCP`` for network connections, ``ISCP`` for serial ports
            :param discard_timeout:
                seconds a partial frame may stay buffered before it is dropped
            :param loop:
                asyncio event loop (optional)
            :param disconnect_callback:
                called with the reason once the connection is cleaned up
                (optional)

            :type frame_callback:
                callable
            :type framing:
                str
            :type discard_timeout:
                float
            :type loop:
                asyncio.loop
            :type disconnect_callback:
                callable
        """
        self._loop = loop or asyncio.get_running_loop()
        self.log = logging.getLogger(__name__)
        self._frame_callback = frame_callback
        self._disconnect_callback = disconnect_callback
        self._discard_timeout = discard_timeout
        self._discard_timer = None
        self.reader = FrameReader(framing)
        self.dispatcher = CommandQueue(self._loop)
        self.buffer = bytearray()
        self.state = ConnectionState.CLOSED
        self.reason = None
        self.transport = None

    def open(self, transport):
        """Start opening ``transport`` in the background.

        Commands sent meanwhile are queued until the connection is open.

            :param transport: a :class:`~aioonkyo.transport.Transport`
            :return: task that completes once the connection is open
        """
        self.state = ConnectionState.OPENING
        self.reason = None
        self.dispatcher.hold("open")
        return self._loop.create_task(self._open(transport))

    async def _open(self, transport):
        try:
            await transport.open(lambda: self)
        except ConnectError as error:
            self.log.error("Unable to open %s: %s", transport, error)
            self.cleanup(str(error))
            raise
        except Exception as error:
            self.log.error("Unable to open %s: %r", transport, error)
            self.cleanup(str(error))
            raise ConnectError(f"Can't open {transport}: {error!r}") from error

    def cleanup(self, reason=None):
        """Tear the connection down. Calling it again does nothing."""
        if self.state is ConnectionState.CLOSED:
            return
        self.log.info("Closing connection to receiver: %s", reason or "cleanup")
        self.state = ConnectionState.CLOSING
        self.reason = reason

        transport, self.transport = self.transport, None
        self.dispatcher.transport = None
        if transport is not None:
            transport.close()
        self._cancel_discard_timer()
        self.buffer.clear()
        self.dispatcher.close(reason or CONNECTION_CLOSED)

        self.state = ConnectionState.CLOSED
        if self._disconnect_callback:
            self._loop.call_soon(self._disconnect_callback, reason)

    def error(self, exc, fatal=False):
        """Handle a transport error, dropping the handle.

        A non fatal error leaves the state alone until the transport reports
        the aborted handle as lost, which then runs :meth:`cleanup`.
        """
        self.log.warning("Error on connection to receiver: %s", exc)
        transport, self.transport = self.transport, None
        self.dispatcher.transport = None
        if transport is not None:
            transport.abort()
        if fatal:
            self.cleanup(str(exc))

    #
    # asyncio network functions
    #

    def connection_made(self, transport):
        """Called when asyncio.Protocol establishes the connection."""
        if self.state is not ConnectionState.OPENING:
            self.log.debug("Connection made after cleanup, closing it")
            transport.close()
            return

        self.log.info("Connection established to receiver")
        self.transport = transport
        self.dispatcher.transport = transport
        self.state = ConnectionState.OPEN
        self.dispatcher.write_next()

    def data_received(self, data):
        """Called when asyncio.Protocol detects received data."""
        if self.state is not ConnectionState.OPEN:
            return
        self.buffer += data
        self.log.debug("Received %d bytes from receiver: %s", len(data), data.hex())

        while self.state is ConnectionState.OPEN:
            frame = self.reader.read_one(self.buffer)
            if frame is None:
                break
            self.log.debug("< %s%s", frame.command, frame.argument)
            self._loop.call_soon(self._frame_callback, frame)
            self.dispatcher.write_next()

        self._arm_discard_timer()

    def eof_received(self):
        """Called when the other end closes its side of the connection."""
        self.log.debug("End of stream from receiver")
        self.cleanup(CONNECTION_CLOSED)

    def connection_lost(self, exc):
        """Called when asyncio.Protocol loses the connection."""
        if self.state is ConnectionState.CLOSED:
            return
        if exc is None:
            self.cleanup(CONNECTION_CLOSED)
        else:
            self.error(exc, fatal=True)

    #
    # discard timer
    #

    def _arm_discard_timer(self):
        self._cancel_discard_timer()
        if self.buffer and self._discard_timeout and self.state is ConnectionState.OPEN:
            self._discard_timer = self._loop.call_later(
                self._discard_timeout, self._discard_buffer
            )

    def _cancel_discard_timer(self):
        if self._discard_timer is not None:
            self._discard_timer.cancel()
            self._discard_timer = None

    def _discard_buffer(self):
        self._discard_timer = None
        if self.buffer:
            self.log.debug("Discarding '%s'", self.buffer.hex())
            self.buffer.clear()
