"""Outbound command queue for the receiver connection."""
import collections
import logging
import weakref

from aioonkyo.exceptions import ConnectError

__all__ = ("CommandQueue", "PendingCommand")

PendingCommand = collections.namedtuple("PendingCommand", ("data", "description", "future_ref"))


class CommandQueue:
    """Send queued commands to the receiver, one per read cycle.

    A command is written right away when no write opportunity is
    outstanding. Otherwise it waits until :meth:`write_next` is called,
    which the connection does once it is open and after every frame
    it receives. The receiver does not answer commands one for one, so
    the futures returned by :meth:`send` only tell that the bytes were
    handed to the transport.
    """

    def __init__(self, loop):
        self._loop = loop
        self.log = logging.getLogger(__name__)
        self._queue = collections.deque()
        self._waiting = None
        self.closed = None
        self.transport = None

    def __len__(self):
        return len(self._queue)

    @property
    def waiting(self):
        """Description of the outstanding write, if any."""
        return self._waiting

    def send(self, data, description):
        """Queue ``data`` for the receiver.

        :param data: raw bytes to write
        :param description: human readable form, used for logging
        :return: :class:`asyncio.Future` resolved once the data is written
        """
        future = self._loop.create_future()
        if self.closed is not None:
            future.set_exception(ConnectError(f"Not sent, {self.closed}: {description}"))
            return future
        # Only a weak reference is kept, callers that lose interest in
        # the future must not keep it alive.
        self._queue.append(PendingCommand(data, description, weakref.ref(future)))
        if self._waiting is None:
            self.write_next()
        return future

    def hold(self, description):
        """Hold back writes until the next :meth:`write_next` call."""
        self.closed = None
        self._waiting = description

    def write_next(self):
        """Write the next queued command, if the transport can take it."""
        self._waiting = None
        if not self._queue:
            return
        if self.transport is None or self.transport.is_closing():
            self.log.debug("No transport, %d command(s) stay queued", len(self._queue))
            return

        command = self._queue.popleft()
        self.log.debug("Sending: %s", command.description)
        self.transport.write(command.data)
        self._waiting = command.description

        future = command.future_ref()
        if future is not None and not future.done():
            future.set_result(None)

    def close(self, reason):
        """Refuse new commands and fail the queued ones with :class:`ConnectError`."""
        self.closed = reason
        while self._queue:
            pending = self._queue.popleft()
            future = pending.future_ref()
            if future is not None and not future.done():
                future.set_exception(ConnectError(f"Not sent, {reason}: {pending.description}"))
        self._waiting = None
