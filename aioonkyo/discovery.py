"""Locate Onkyo/Integra receivers with the eISCP broadcast query."""
import asyncio
import logging
from collections import namedtuple

import netifaces

from aioonkyo.exceptions import FramingError
from aioonkyo.protocol import DEFAULT_PORT, DISCOVERY_TIMEOUT, eISCPPacket

__all__ = ("DiscoveryProtocol", "ReceiverInfo", "discover")

log = logging.getLogger(__name__)

ReceiverInfo = namedtuple("ReceiverInfo", ("host", "port", "model_name", "identifier"))


class DiscoveryProtocol(asyncio.DatagramProtocol):

    def __init__(self, target, discovered_callback=None, discovered=None):
        """Protocol handler that handles AVR discovery by broadcasting a discovery packet.

            :param target:
                the target (host, port) to broadcast the discovery packet over
            :param discovered_callback:
                called with a :class:`ReceiverInfo` when a device has been
                discovered (optional)
            :param discovered:
                identifiers already seen, shared between interfaces (optional)

            :type target:
                tuple
            :type: discovered_callback:
                callable
            :type discovered:
                set
        """
        self.log = logging.getLogger(__name__)
        self._target = target
        self._discovered_callback = discovered_callback

        self.discovered = discovered if discovered is not None else set()
        self.transport = None

    def connection_made(self, transport):
        """Discovery connection created, broadcast discovery packet."""
        self.transport = transport
        self.broadcast_discovery_packet()

    def datagram_received(self, data, addr):
        """Received response from device."""
        try:
            info = eISCPPacket.parse_info(data)
        except FramingError as error:
            self.log.debug("Ignoring datagram from %s: %s", addr, error)
            return
        if info and info["identifier"] not in self.discovered:
            self.log.info(f"{info['model_name']} discovered at {addr}")
            self.discovered.add(info["identifier"])
            if self._discovered_callback:
                self._discovered_callback(
                    ReceiverInfo(
                        addr[0], int(info["iscp_port"]), info["model_name"], info["identifier"]
                    )
                )

    def error_received(self, exc):
        self.log.debug("Discovery error: %s", exc)

    def broadcast_discovery_packet(self):
        """Broadcast discovery packets over the target."""
        self.log.debug(f"Broadcast discovery packet to {self._target}")
        self.transport.sendto(eISCPPacket("!xECNQSTN\r").get_raw(), self._target)
        self.transport.sendto(eISCPPacket("!pECNQSTN\r").get_raw(), self._target)

    def close(self):
        """Close the discovery connection."""
        self.log.debug("Closing broadcast discovery connection")
        if self.transport:
            self.transport.close()


def _interface_addresses():
    return [
        ifaddr
        for interface in netifaces.interfaces()
        for ifaddr in netifaces.ifaddresses(interface).get(netifaces.AF_INET, [])
    ]


async def discover(host=None, port=DEFAULT_PORT, timeout=DISCOVERY_TIMEOUT, first=False, loop=None):
    """Discover Onkyo or Pioneer Network Receivers on the network.

    Broadcasts the discovery query on the broadcast address of every
    network interface and collects the replies.

    :param host:
        If specified, the query is sent to this host only.
    :param port:
        UDP port the receivers listen on
    :param timeout:
        Number of seconds to wait for replies
    :param first:
        Return as soon as one receiver has replied
    :param loop:
        asyncio.loop for async operation

    :return: list of :class:`ReceiverInfo`, in order of reply
    """
    loop = loop or asyncio.get_running_loop()
    found = []
    seen = set()
    done = loop.create_future()

    def discovered_callback(receiver):
        found.append(receiver)
        if first and not done.done():
            done.set_result(None)

    protocols = []
    for ifaddr in _interface_addresses():
        if "addr" not in ifaddr:
            continue
        if host:
            # Set target to specified host
            target = (host, port)
        elif "broadcast" in ifaddr:
            # Use the broadcast address to send the discovery packets
            target = (ifaddr["broadcast"], port)
        else:
            # No host provided and no broadcast address available, so skip
            continue

        protocol = DiscoveryProtocol(target, discovered_callback, seen)
        try:
            await loop.create_datagram_endpoint(
                lambda: protocol,
                local_addr=(ifaddr["addr"], 0),
                allow_broadcast=True,
            )
        except OSError as error:
            log.debug("Skipping interface address %s: %s", ifaddr["addr"], error)
            continue
        protocols.append(protocol)

    try:
        await asyncio.wait_for(done, timeout)
    except asyncio.TimeoutError:
        pass
    finally:
        for protocol in protocols:
            protocol.close()

    return found
