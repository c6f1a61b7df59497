"""Provides a raw console to test module and demonstrate usage."""
import argparse
import asyncio
import logging

import aioonkyo
from aioonkyo.protocol import DEFAULT_DISCARD_TIMEOUT, DEFAULT_PORT, iscp_to_command

__all__ = ("console", "monitor")


async def console(log, argv=None):
    """Connect to receiver and show events as they occur.

    Pulls the following arguments from the command line (not method arguments):

    :param device:
        ``discover``, host[:port] or serial device of the receiver.
    :param port:
        TCP port number of the device.
    :param discard-timeout:
        Seconds before a partial message is dropped.
    :param verbose:
        Show debug logging.
    :param messages:
        A sequence of one or more messages to send to the device.
    """
    parser = argparse.ArgumentParser(description=console.__doc__)
    parser.add_argument("--device", default="discover", help="discover, host[:port] or serial device")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port of AVR")
    parser.add_argument("--discard-timeout", type=float, default=DEFAULT_DISCARD_TIMEOUT)
    parser.add_argument("--verbose", "-v", action="count")
    parser.add_argument("messages", nargs="*")

    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(level=level)

    closed = asyncio.Event()

    def log_callback(command, argument, client):
        """Receives every message from the receiver."""
        try:
            zone, name, value = iscp_to_command(command, argument)
        except ValueError:
            log.info("%s %s", command, argument)
        else:
            log.info("%s %s | Zone: %s | %s: %s", command, argument, zone, name, value)

    def disconnect_callback(reason):
        log.info("Disconnected from AVR: %s", reason)
        closed.set()

    async with aioonkyo.Onkyo(
        args.device,
        callback=log_callback,
        port=args.port,
        discard_timeout=args.discard_timeout,
        disconnect_callback=disconnect_callback,
    ) as receiver:
        log.info("Connected to AVR at %s", receiver.transport)
        for message in args.messages:
            try:
                receiver.command(message)
            except ValueError as error:
                log.error("Invalid message. %s", error)
        await closed.wait()


def monitor():
    """Wrapper to call console with a loop."""
    log = logging.getLogger(__name__)
    try:
        asyncio.run(console(log))
    except aioonkyo.ConnectError as error:
        log.error("%s", error)
    except KeyboardInterrupt:
        pass
