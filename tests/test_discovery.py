"""Tests for receiver discovery."""

import asyncio

from aioonkyo import discovery
from aioonkyo.discovery import DiscoveryProtocol, ReceiverInfo
from aioonkyo.protocol import eISCPPacket


class FakeDatagramTransport:
    def __init__(self):
        self.sent = []
        self.closed = False

    def sendto(self, data, addr):
        self.sent.append((data, addr))

    def close(self):
        self.closed = True


def reply(model="TX-NR609", identifier="0009B0D0A0B0"):
    return eISCPPacket(f"!1ECN{model}/60128/DX/{identifier}\x1a\r\n").get_raw()


def test_broadcast_on_connection():
    transport = FakeDatagramTransport()
    protocol = DiscoveryProtocol(("192.168.1.255", 60128))
    protocol.connection_made(transport)
    assert [addr for _, addr in transport.sent] == [("192.168.1.255", 60128)] * 2
    assert eISCPPacket.parse(transport.sent[0][0]) == "!xECNQSTN\r"
    assert eISCPPacket.parse(transport.sent[1][0]) == "!pECNQSTN\r"
    protocol.close()
    assert transport.closed


def test_reply_reports_receiver_once():
    found = []
    protocol = DiscoveryProtocol(("192.168.1.255", 60128), found.append)
    protocol.datagram_received(reply(), ("192.168.1.20", 60128))
    protocol.datagram_received(reply(), ("192.168.1.20", 60128))
    assert found == [ReceiverInfo("192.168.1.20", 60128, "TX-NR609", "0009B0D0A0B0")]


def test_seen_identifiers_are_shared():
    found = []
    seen = set()
    first = DiscoveryProtocol(("192.168.1.255", 60128), found.append, seen)
    second = DiscoveryProtocol(("10.0.0.255", 60128), found.append, seen)
    first.datagram_received(reply(), ("192.168.1.20", 60128))
    second.datagram_received(reply(), ("192.168.1.20", 60128))
    second.datagram_received(reply("TX-8050", "0009B0111111"), ("10.0.0.7", 60128))
    assert [receiver.model_name for receiver in found] == ["TX-NR609", "TX-8050"]


def test_ignores_other_datagrams():
    found = []
    protocol = DiscoveryProtocol(("192.168.1.255", 60128), found.append)
    protocol.datagram_received(b"hello", ("192.168.1.30", 60128))
    protocol.datagram_received(eISCPPacket("!1PWR01\x1a").get_raw(), ("192.168.1.30", 60128))
    assert found == []


def test_discover_without_interfaces(monkeypatch):
    monkeypatch.setattr(discovery, "_interface_addresses", lambda: [])
    assert asyncio.run(discovery.discover(timeout=0.01)) == []


def test_discover_skips_interfaces_without_broadcast(monkeypatch):
    monkeypatch.setattr(discovery, "_interface_addresses", lambda: [{"addr": "127.0.0.1"}, {}])
    assert asyncio.run(discovery.discover(timeout=0.01)) == []
