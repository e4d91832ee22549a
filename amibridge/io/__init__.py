"""
Wire-level AMI implementation.

This module contains the lowest-level communication components:
- Packet, parse_line, encode_action - AMI text framing
- PacketReader - Turns a byte stream into packets
- AmiClient - One-shot actions over a TCP connection
- EventRegistry - Event type to handler fan-out
- AmiListener - Persistent, self-healing event connection
"""

from .packet import Packet, PacketConst, ReadResult, parse_line, parse_packet, encode_action, format_variables
from .framing import PacketReader, FramingConst
from .client import AmiClient, ClientConst, ConnectionState
from .dispatch import EventRegistry, EventHandler, WILDCARD
from .listener import AmiListener, ListenerConst, ListenerState
from .types import AmiEvent, AmiAction

__all__ = [
    "Packet",
    "PacketConst",
    "ReadResult",
    "parse_line",
    "parse_packet",
    "encode_action",
    "format_variables",
    "PacketReader",
    "FramingConst",
    "AmiClient",
    "ClientConst",
    "ConnectionState",
    "EventRegistry",
    "EventHandler",
    "WILDCARD",
    "AmiListener",
    "ListenerConst",
    "ListenerState",
    "AmiEvent",
    "AmiAction",
]
