"""
amibridge Python Library

Bridges a CRM to an Asterisk call-control server over the Asterisk Manager
Interface (AMI) and the ViciDial agent HTTP API.

This library provides two layers:

1. **amibridge.io**: Wire-level AMI implementation (framing, one-shot actions, persistent event listener)
2. **amibridge.crm**: HTTP side (CRM event forwarding, ViciDial agent call control)

Example usage:
    import amibridge

    # One-shot actions
    async with await amibridge.AmiClient.create("192.168.1.100") as ami:
        if await ami.login("manager", "manager_secret"):
            await ami.originate("SIP/8001", "0501234567")

    # Persistent event listener
    listener = amibridge.AmiListener("192.168.1.100", username="manager", secret="manager_secret")
    listener.on("Hangup", on_hangup)
    await listener.start()
"""

# Wire-level AMI
from .io import (
    AmiClient, AmiListener, EventRegistry, Packet, PacketReader, ReadResult,
    ConnectionState, ListenerState, AmiEvent, AmiAction, WILDCARD,
    parse_line, parse_packet, encode_action,
)

# HTTP side
from .crm import HttpRelay, RelayResult, CrmForwarder, ViciDialAgent

# Configuration and service
from .config import BridgeConfig
from .service import AmiBridgeService

# Exceptions
from .exceptions import (
    AmiError, AmiConnectionError, AmiTimeoutError, AmiStreamClosed, AmiAuthenticationError,
    AmiProtocolError, AmiConfigurationError, HandlerError, RelayError,
)

# Utilities
from .utils import run_with_keyboard_interrupt, install_stop_signals

__version__ = "0.1.0"

__all__ = [
    # Wire-level AMI
    "AmiClient",
    "AmiListener",
    "EventRegistry",
    "Packet",
    "PacketReader",
    "ReadResult",
    "ConnectionState",
    "ListenerState",
    "AmiEvent",
    "AmiAction",
    "WILDCARD",
    "parse_line",
    "parse_packet",
    "encode_action",

    # HTTP side
    "HttpRelay",
    "RelayResult",
    "CrmForwarder",
    "ViciDialAgent",

    # Configuration and service
    "BridgeConfig",
    "AmiBridgeService",

    # Exceptions
    "AmiError",
    "AmiConnectionError",
    "AmiTimeoutError",
    "AmiStreamClosed",
    "AmiAuthenticationError",
    "AmiProtocolError",
    "AmiConfigurationError",
    "HandlerError",
    "RelayError",

    # Utilities
    "run_with_keyboard_interrupt",
    "install_stop_signals",
]
