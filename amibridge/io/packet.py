"""
AMI packet model and text parsing.

An AMI packet is a block of `Field: value` lines terminated by a blank line.
Actions, responses and events all share this framing:

    Action: Login
    Username: manager
    Secret: manager_secret
    ActionID: ami-1-1718000000

The helpers here are pure functions over text; reading them off a socket is
the job of `framing.PacketReader`.
"""

from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..exceptions import AmiProtocolError


class PacketConst:
    """Constants for AMI packet framing"""
    EOL = "\r\n"
    ENCODING = "utf-8"
    SEPARATOR = ":"


class ReadResult(Enum):
    """Sentinels returned by the framer when no packet is available"""
    NO_DATA = "no data"
    CLOSED = "stream closed"


class Packet(dict):
    """A parsed AMI packet. Field values are kept as opaque strings."""

    @property
    def event(self) -> Optional[str]:
        return self.get("Event")

    @property
    def response(self) -> Optional[str]:
        return self.get("Response")

    @property
    def action_id(self) -> Optional[str]:
        return self.get("ActionID")

    @property
    def message(self) -> Optional[str]:
        return self.get("Message")

    def is_event(self) -> bool:
        return "Event" in self

    def is_response(self) -> bool:
        return "Response" in self

    def is_success(self) -> bool:
        """True iff the Response field case-insensitively equals 'success'"""
        response = self.get("Response")
        return response is not None and response.lower() == "success"


def parse_line(line: str) -> Optional[Tuple[str, str]]:
    """Split `Field: value` on the first colon. Lines without a colon give None."""
    if PacketConst.SEPARATOR not in line:
        return None
    key, value = line.split(PacketConst.SEPARATOR, 1)
    return key.strip(), value.strip()


def parse_packet(text: str | Iterable[str]) -> Packet:
    """Parse lines up to the first blank line into a Packet."""
    lines = text.splitlines() if isinstance(text, str) else text
    packet = Packet()
    for line in lines:
        line = line.rstrip("\r\n")
        if line == "":
            break
        pair = parse_line(line)
        if pair is not None:
            packet[pair[0]] = pair[1]
    return packet


def format_variables(variables: Mapping[str, Any]) -> str:
    """Join channel variables as `K=V,K=V` for the Originate Variable field"""
    return ",".join(f"{k}={v}" for k, v in variables.items())


def encode_action(fields: Mapping[str, Any]) -> bytes:
    """Serialize an action to wire format, terminated by a blank line."""
    if "Action" not in fields:
        raise ValueError("An AMI action must include an 'Action' field")
    out = []
    for key, value in fields.items():
        key = str(key)
        value = "" if value is None else str(value)
        if PacketConst.SEPARATOR in key or "\r" in key or "\n" in key:
            raise AmiProtocolError(f"Invalid AMI field name: {key!r}")
        if "\r" in value or "\n" in value:
            raise AmiProtocolError(f"Line break in value of AMI field {key}")
        out.append(f"{key}: {value}{PacketConst.EOL}")
    out.append(PacketConst.EOL)
    return "".join(out).encode(PacketConst.ENCODING)
