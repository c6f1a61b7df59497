"""Module to encode, frame and parse ISCP and eISCP messages."""
import logging
import re
import struct
from collections import namedtuple

from aioonkyo import commands
from aioonkyo.exceptions import FramingError
from aioonkyo.utils import ValueRange

__all__ = ("Frame", "FrameReader", "command_to_packet", "text_to_iscp")

DEFAULT_PORT = 60128
DEFAULT_DISCARD_TIMEOUT = 1
DEFAULT_BAUDRATE = 9600
DISCOVERY_TIMEOUT = 5

# Framing used on the wire: eISCP over Ethernet, plain ISCP over RS-232.
ETHERNET = "eISCP"
SERIAL = "ISCP"

EOF = b"\x1a"
TERMINATORS = "\x1a\r\n"
MAGIC = b"ISCP"
HEADER_SIZE = 16
HEADER_FORMAT = "! 4s I I b 3s"

Frame = namedtuple("Frame", ("command", "argument"))

log = logging.getLogger(__name__)


class ISCPMessage(object):
    """Deals with formatting and parsing data wrapped in an ISCP
    containers. The docs say:
        ISCP (Integra Serial Control Protocol) consists of three
        command characters and parameter character(s) of variable
        length.
    It seems this was the original protocol used for communicating
    via a serial cable.
    """

    def __init__(self, data):
        self.data = data

    def __str__(self):
        # ! = start character
        # 1 = destination unit type, 1 means receiver
        # End character may be CR, LF or CR+LF, according to doc
        return "!1{}\r".format(self.data)

    @classmethod
    def parse(cls, data):
        """Return the command and parameters of an ISCP message.

        Receivers terminate messages with EOF, CR, LF or any mix of them.
        Raises :class:`FramingError` if ``data`` is not an ISCP message.
        """
        data = data.rstrip(TERMINATORS)
        if not data.startswith("!1"):
            raise FramingError("Missing start characters in {!r}".format(data))
        if len(data) < 5:
            raise FramingError("Message too short: {!r}".format(data))
        return data[2:]


class eISCPPacket(object):
    """For communicating over Ethernet, traditional ISCP messages are
    wrapped inside an eISCP package.
    """

    header = namedtuple("header", ("magic, header_size, data_size, version, reserved"))

    def __init__(self, iscp_message):
        iscp_message = str(iscp_message)
        # We attach data separately, because Python's struct module does
        # not support variable length strings,
        header = struct.pack(
            HEADER_FORMAT,
            MAGIC,  # magic
            HEADER_SIZE,  # header size (16 bytes)
            len(iscp_message),  # data size
            0x01,  # version
            b"\x00\x00\x00",  # reserved
        )

        self._bytes = header + iscp_message.encode("utf-8")

    def __str__(self):
        return self._bytes.decode("utf-8")

    def get_raw(self):
        return self._bytes

    @classmethod
    def parse(cls, bytes):
        """Parse the eISCP package given by ``bytes``."""
        h = cls.parse_header(bytes[:HEADER_SIZE])
        data = bytes[h.header_size : h.header_size + h.data_size]
        if len(data) != h.data_size:
            raise FramingError(
                "Expected {} data bytes, got {}".format(h.data_size, len(data))
            )
        return data.decode("utf-8", "replace")

    @classmethod
    def parse_header(cls, bytes):
        """Parse the header of an eISCP package.
        This is useful when reading data in a streaming fashion,
        because you can subsequently know the number of bytes to
        expect in the packet.
        """
        # A header is always 16 bytes in length
        if len(bytes) != HEADER_SIZE:
            raise FramingError("Header must be {} bytes".format(HEADER_SIZE))

        magic, header_size, data_size, version, reserved = struct.unpack(
            HEADER_FORMAT, bytes
        )

        # Strangly, the header contains a header_size field.
        if magic != MAGIC:
            raise FramingError("Unexpected magic {!r}".format(magic))
        if header_size != HEADER_SIZE:
            raise FramingError("Unexpected header size {}".format(header_size))

        return eISCPPacket.header(
            magic.decode(), header_size, data_size, version, reserved
        )

    @classmethod
    def parse_info(cls, bytes):
        """Parse a discovery reply into a dict, or None if it is not one."""
        response = cls.parse(bytes)
        # Return string looks something like this:
        # !1ECNTX-NR609/60128/DX/0009B0123456
        info = re.match(r'''
            !
            (?P<device_category>\d)
            ECN
            (?P<model_name>[^/]*)/
            (?P<iscp_port>\d{5})/
            (?P<area_code>\w{2})/
            (?P<identifier>[^\x1a\r\n]{0,12})
        ''', response.strip(), re.VERBOSE)

        if info:
            return info.groupdict()


class FrameReader(object):
    """Split complete frames off the front of a receive buffer.

    ``read_one`` consumes at most one frame from ``buffer`` (a
    :class:`bytearray`, modified in place) and returns it, or returns
    None when the buffer holds no complete frame yet. Callers loop
    until None since a single read may carry several frames.
    Bytes that cannot be a frame are skipped; a partial frame is
    left in place to wait for more data.
    """

    def __init__(self, framing=ETHERNET):
        if framing not in (ETHERNET, SERIAL):
            raise ValueError("Unknown framing {!r}".format(framing))
        self.framing = framing

    def read_one(self, buffer):
        split = self._split_packet if self.framing == ETHERNET else self._split_message
        while True:
            body = split(buffer)
            if body is None:
                return None
            try:
                message = ISCPMessage.parse(body.decode("utf-8", "replace"))
            except FramingError as error:
                log.warning("Unable to parse received message: %s", error)
                continue
            return Frame(message[:3], message[3:])

    def _split_packet(self, buffer):
        while True:
            if not buffer.startswith(MAGIC):
                offset = buffer.find(MAGIC)
                if offset < 0:
                    return None
                log.debug("Skipping %d bytes before packet header", offset)
                del buffer[:offset]

            if len(buffer) < HEADER_SIZE:
                return None

            try:
                header = eISCPPacket.parse_header(bytes(buffer[:HEADER_SIZE]))
            except FramingError as error:
                log.warning("Bad packet header: %s", error)
                del buffer[: len(MAGIC)]
                continue

            end = header.header_size + header.data_size
            if len(buffer) < end:
                return None
            body = bytes(buffer[header.header_size : end])
            del buffer[:end]
            return body

    def _split_message(self, buffer):
        end = buffer.find(EOF)
        if end < 0:
            return None
        body = bytes(buffer[:end])
        del buffer[: end + 1]
        # EOF may be followed by CR/LF/CR+LF
        while buffer[:1] in (b"\r", b"\n"):
            del buffer[:1]
        # Anything in front of the start characters is line noise
        start = body.find(b"!1")
        if start > 0:
            log.debug("Skipping %d bytes before message", start)
            body = body[start:]
        return body


def command_to_packet(command, framing=ETHERNET):
    """Convert an ascii command like (PVR00) to the binary data we
    need to send to the receiver.
    """
    if framing == SERIAL:
        return str(ISCPMessage(command)).encode("utf-8")
    return eISCPPacket(ISCPMessage(command)).get_raw()


def normalize_command(command):
    """Ensures that various ways to refer to a command can be used."""
    command = command.lower()
    command = command.replace("_", "-")
    return command


def text_to_iscp(text):
    """Resolve user input to an ISCP message.

    Raw ISCP messages such as ``PWR01`` or ``MVLQSTN`` pass through
    unchanged, anything else goes through :func:`command_to_iscp`.
    """
    text = text.strip()
    if re.fullmatch(r"[A-Z]{3}[0-9A-Z+\-]+", text):
        return text
    return command_to_iscp(normalize_command(text))


def command_to_iscp(command, arguments=None, zone=None):
    """Transform the given given high-level command to a
    low-level ISCP message.
    Raises :class:`ValueError` if `command` is not valid.
    This exposes a system of human-readable, "pretty"
    commands, which is organized into three parts: the zone, the
    command, and arguments. For example::
        command('power', 'on')
        command('power', 'on', zone='main')
        command('volume', 66, zone='zone2')
    As you can see, if no zone is given, the main zone is assumed.
    Instead of passing three different parameters, you may put the
    whole thing in a single string, which is helpful when taking
    input from users::
        command('power on')
        command('zone2 volume 66')
    To further simplify things, for example when taking user input
    from a command line, where whitespace needs escaping, the
    following is also supported:
        command('power=on')
        command('zone2.volume=66')
    """
    default_zone = "main"
    command_sep = r"[. ]+"
    norm = lambda s: s.strip().lower()

    # If parts are not explicitly given, parse the command
    if arguments is None and zone is None:
        # Separating command and args with colon allows multiple args
        if ":" in command or "=" in command:
            base, arguments = re.split(r"[:=]", command, maxsplit=1)
            parts = [norm(c) for c in re.split(command_sep, base.strip())]
            if len(parts) == 2:
                zone, command = parts
            else:
                zone = default_zone
                command = parts[0]
            # Split arguments by comma or space
            arguments = [norm(a) for a in re.split(r"[ ,]", arguments.strip())]
        else:
            # Split command part by space or dot
            parts = [norm(c) for c in re.split(command_sep, command.strip())]
            if len(parts) >= 3:
                zone, command = parts[:2]
                arguments = parts[2:]
            elif len(parts) == 2:
                zone = default_zone
                command = parts[0]
                arguments = parts[1:]
            else:
                raise ValueError("Need at least command and argument")
    else:
        zone = norm(zone or default_zone)
        command = norm(command)
        if not isinstance(arguments, (list, tuple)):
            arguments = [arguments]
        arguments = [norm(str(a)) for a in arguments]

    # Find the command in our database, resolve to internal eISCP command
    group = commands.ZONE_MAPPINGS.get(zone, zone)
    if group not in commands.COMMANDS:
        raise ValueError('"{}" is not a valid zone'.format(zone))

    prefix = commands.COMMAND_MAPPINGS[group].get(command, command)
    if prefix not in commands.COMMANDS[group]:
        raise ValueError(
            '"{}" is not a valid command in zone "{}"'.format(command, zone)
        )

    # Resolve the argument to the command. This is a bit more involved,
    # because some commands support ranges (volume).
    argument = arguments[0]

    # 1. Consider if there is a alias, e.g. level-up for UP.
    try:
        value = commands.VALUE_MAPPINGS[group][prefix][argument]
    except KeyError:
        # 2. See if we can match a range
        for possible_arg in commands.VALUE_MAPPINGS[group][prefix]:
            if argument.isdigit():
                if isinstance(possible_arg, ValueRange):
                    if int(argument) in possible_arg:
                        # We need to send the format "FF", hex() gives us 0xff
                        value = hex(int(argument))[2:].zfill(2).upper()
                        break
        else:
            raise ValueError(
                '"{}" is not a valid argument for command '
                '"{}" in zone "{}"'.format(argument, command, zone)
            )

    return "{}{}".format(prefix, value)


def iscp_to_command(command, argument):
    """Translate a received mnemonic and argument to ``(zone, name, value)``.

    Raises :class:`ValueError` for mnemonics missing from the command table.
    """
    for zone, zone_cmds in commands.COMMANDS.items():
        if command not in zone_cmds:
            continue
        name = zone_cmds[command]["name"].split(",")[0]
        values = zone_cmds[command]["values"]
        if argument in values:
            value = values[argument]["name"]
            if "," in value:
                value = tuple(value.split(","))
            return zone, name, value
        if re.match("[+-]?[0-9a-f]+$", argument, re.IGNORECASE):
            return zone, name, int(argument, 16)
        if "," in argument:
            return zone, name, tuple(argument.split(","))
        return zone, name, argument

    raise ValueError(
        "Cannot convert ISCP message to command: {}{}".format(command, argument)
    )
