"""
AMI packet framer.

Turns an asyncio byte stream into discrete AMI packets. Each read is bounded
by a timeout so callers can poll a stop flag or notice a half-open socket.

Example usage:
async def main():
    reader, writer = await asyncio.open_connection("192.0.2.10", 5038)
    packets = PacketReader(reader, timeout=5.0)
    greeting = await packets.read_line()
    while True:
        result = await packets.read_packet()
        if result is ReadResult.CLOSED:
            break
        if result is ReadResult.NO_DATA:
            continue
        print(result.event, result)
"""

import asyncio
import logging
from typing import Optional

from .packet import Packet, PacketConst, ReadResult, parse_line
from ..exceptions import AmiConnectionError


class FramingConst:
    """Constants for the packet framer"""
    DEFAULT_TIMEOUT = 5.0


class PacketReader:
    """
    Reads `Field: value` lines until a blank line, EOF or read timeout.
      - A partial line left by a timeout stays buffered and is completed by the next read
      - Lines without a colon are skipped
      - A packet with no fields collapses to ReadResult.NO_DATA (or CLOSED at EOF)
    """

    def __init__(self, reader: asyncio.StreamReader, timeout: float = FramingConst.DEFAULT_TIMEOUT,
                 logger: Optional[logging.Logger] = None):
        self.reader = reader
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    async def read_line(self, timeout: Optional[float] = None) -> str | ReadResult:
        """Read one line with its terminator stripped"""
        if timeout is None: timeout = self.timeout
        while True:
            try:
                raw = await asyncio.wait_for(self.reader.readline(), timeout=timeout)
            except asyncio.TimeoutError:
                return ReadResult.NO_DATA
            except ValueError as e:
                # readline() discards an over-long line before raising
                self.logger.warning(f"Skipping over-long AMI line: {e}")
                continue
            except OSError as e:
                raise AmiConnectionError(f"AMI read failed: {e}") from e
            if not raw:
                return ReadResult.CLOSED
            return raw.decode(PacketConst.ENCODING, errors="replace").rstrip("\r\n")

    async def read_packet(self, timeout: Optional[float] = None) -> Packet | ReadResult:
        """Read the next packet, or a sentinel if none is available"""
        packet = Packet()
        while True:
            line = await self.read_line(timeout)
            if isinstance(line, ReadResult):
                if packet:
                    return packet
                return line
            if line == "":
                return packet if packet else ReadResult.NO_DATA
            pair = parse_line(line)
            if pair is None:
                self.logger.debug(f"Ignoring AMI line without a field separator: {line!r}")
                continue
            packet[pair[0]] = pair[1]
