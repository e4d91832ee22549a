"""
AMI one-shot action client.

This module implements the request/response side of the Asterisk Manager
Interface using asyncio streams. It contains the AmiClient class for sending
actions and receiving their responses.

Terms:
- Action = A packet sent by the Client to the server (must carry an Action field)
- Response = The packet answering an Action (carries a Response field)
- Client = A class which sends Actions and receives Responses

Example usage:
async def main():
    client = await AmiClient.create("192.0.2.10", 5038)
    async with client:
        if await client.login("manager", "manager_secret"):
            resp = await client.originate("SIP/8001", "0501234567")
            print("Originate:", resp.response, resp.message)

asyncio.run(main())
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Mapping, Optional, Self

from colorama import Fore, Style

from .framing import PacketReader
from .packet import Packet, ReadResult, encode_action, format_variables
from .types import AmiAction
from ..exceptions import AmiConnectionError, AmiError, AmiStreamClosed, AmiTimeoutError


# Constants
class ClientConst:
    """Constants for the AmiClient"""
    DEFAULT_PORT = 5038
    CONNECT_TIMEOUT = 10.0
    DEFAULT_TIMEOUT = 30.0
    LOGOFF_TIMEOUT = 2.0
    ACTION_ID_PREFIX = "ami-"
    HANGUP_NORMAL_CLEARING = 16
    DEFAULT_CONTEXT = "default"
    DEFAULT_PRIORITY = "1"
    DEFAULT_PARKING_LOT = "default"


class ConnectionState(Enum):
    DISCONNECTED = 0
    CONNECTED = 1
    AUTHENTICATED = 2


class AmiClient:
    """
    Action:   [Field: value CRLF]... ActionID: ami-<seq>-<unix time> CRLF CRLF
    Response: [Field: value CRLF]... CRLF
      - one action is outstanding at a time; send_action() waits for its response
      - Event packets arriving while a response is awaited are skipped
      - a read timeout yields an empty Packet rather than an exception
    """

    def __init__(self,
                 host: str,
                 port: int = ClientConst.DEFAULT_PORT,
                 *,
                 connect_timeout: float = ClientConst.CONNECT_TIMEOUT,
                 timeout: float = ClientConst.DEFAULT_TIMEOUT,
                 logger: Optional[logging.Logger] = None,
                 print_traffic: bool = False):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.print_traffic = print_traffic
        self.state = ConnectionState.DISCONNECTED
        self.greeting: Optional[str] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._packets: Optional[PacketReader] = None
        self._action_seq: int = 0

    @classmethod
    async def create(cls, host: str, port: int = ClientConst.DEFAULT_PORT, **kwargs) -> Self:
        self = cls(host, port, **kwargs)
        await self.connect()
        return self

    @property
    def version(self) -> Optional[str]:
        """Protocol version announced in the greeting, e.g. '5.0.0'"""
        if not self.greeting or "/" not in self.greeting:
            return None
        return self.greeting.rsplit("/", 1)[1].strip()

    # ============================
    # CONNECTION
    # ============================

    async def connect(self) -> None:
        """Open the TCP connection and consume the greeting banner"""
        if self.is_connected():
            self.logger.warning(f"Already connected to AMI at {self.host}:{self.port}")
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise AmiTimeoutError(f"AMI connection to {self.host}:{self.port} timed out after {self.connect_timeout}s") from e
        except OSError as e:
            raise AmiConnectionError(f"AMI connection to {self.host}:{self.port} failed: {e}") from e

        self._packets = PacketReader(self._reader, timeout=self.timeout, logger=self.logger)
        self._action_seq = 0

        # Consume the greeting line: "Asterisk Call Manager/x.x.x"
        greeting = await self._packets.read_line(timeout=self.connect_timeout)
        if greeting is ReadResult.CLOSED:
            await self.close()
            raise AmiStreamClosed(f"AMI server at {self.host}:{self.port} closed the connection before greeting")
        if greeting is ReadResult.NO_DATA:
            await self.close()
            raise AmiTimeoutError(f"No greeting from AMI server at {self.host}:{self.port}")

        self.greeting = greeting
        self.state = ConnectionState.CONNECTED
        self.logger.info(f"Connected to AMI at {self.host}:{self.port} ({greeting})")

    async def login(self, username: str, secret: str) -> bool:
        """Authenticate. Returns True iff the server answers Response: Success."""
        response = await self.send_action({
            "Action": AmiAction.LOGIN.value,
            "Username": username,
            "Secret": secret,
        })
        if response.is_success():
            self.state = ConnectionState.AUTHENTICATED
            return True
        self.logger.warning(f"AMI login as {username} rejected: {response.message or response.response or 'no response'}")
        return False

    async def disconnect(self) -> None:
        """Send a best-effort Logoff, then close the socket. Never raises."""
        if self._writer is None:
            return
        try:
            await self.send_action({"Action": AmiAction.LOGOFF.value}, timeout=ClientConst.LOGOFF_TIMEOUT)
        except (AmiError, OSError) as e:
            self.logger.debug(f"Logoff failed, closing anyway: {e}")
        finally:
            await self.close()

    async def close(self) -> None:
        """Force-close the transport without Logoff"""
        writer = self._writer
        self._writer = None
        self._reader = None
        self._packets = None
        self.state = ConnectionState.DISCONNECTED
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, asyncio.TimeoutError):
            pass

    def is_connected(self) -> bool:
        """Check if client is connected"""
        return self._writer is not None and not self._writer.is_closing()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    # ============================
    # SEND / RECEIVE
    # ============================

    async def send_action(self, fields: Mapping[str, Any], *, timeout: Optional[float] = None) -> Packet:
        """Send an action with a fresh ActionID and return its response packet"""
        if not self.is_connected():
            raise AmiConnectionError("Not connected. Call connect() first.")
        if timeout is None: timeout = self.timeout

        action = dict(fields)
        action["ActionID"] = self._next_action_id()
        wire = encode_action(action)

        if self.print_traffic:
            self._print_packet("SEND", Fore.MAGENTA, action)

        try:
            self._writer.write(wire)
            await self._writer.drain()
        except OSError as e:
            await self.close()
            raise AmiConnectionError(f"AMI write to {self.host}:{self.port} failed: {e}") from e

        return await self._read_response(action["ActionID"], timeout)

    async def read_packet(self, timeout: Optional[float] = None) -> Packet | ReadResult:
        """Read the next packet from the connection"""
        if self._packets is None:
            raise AmiConnectionError("Not connected. Call connect() first.")
        result = await self._packets.read_packet(timeout)
        if self.print_traffic and isinstance(result, Packet):
            self._print_packet("RECV", Fore.CYAN, result)
        return result

    async def _read_response(self, action_id: str, timeout: float) -> Packet:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                self.logger.warning(f"No response to {action_id} within {timeout}s")
                return Packet()
            result = await self.read_packet(remaining)
            if result is ReadResult.NO_DATA:
                self.logger.warning(f"No response to {action_id} within {timeout}s")
                return Packet()
            if result is ReadResult.CLOSED:
                await self.close()
                raise AmiStreamClosed(f"AMI connection to {self.host}:{self.port} closed while awaiting {action_id}")
            if result.is_response() and result.action_id in (None, action_id):
                return result
            self.logger.debug(f"Skipping packet while awaiting {action_id}: {dict(result)}")

    def _next_action_id(self) -> str:
        """Allocate a unique ActionID for this connection"""
        self._action_seq += 1
        return f"{ClientConst.ACTION_ID_PREFIX}{self._action_seq}-{int(time.time())}"

    def _print_packet(self, direction: str, colour: str, fields: Mapping[str, Any]) -> None:
        body = ", ".join(f"{k}: {'****' if k == 'Secret' else v}" for k, v in fields.items())
        print(colour + f"{direction}: " + Style.DIM + f"{self.host}:{self.port}  "
              + Style.BRIGHT + f"[{body}]" + Style.RESET_ALL)

    # ============================
    # CALL ACTIONS
    # ============================

    async def originate(self,
                        channel: str,
                        extension: str,
                        context: str = ClientConst.DEFAULT_CONTEXT,
                        priority: str = ClientConst.DEFAULT_PRIORITY,
                        variables: Optional[Mapping[str, Any]] = None,
                        timeout_ms: Optional[int] = None) -> Packet:
        """Place an outbound call from channel (e.g. 'SIP/8001') to extension."""
        action = {
            "Action": AmiAction.ORIGINATE.value,
            "Channel": channel,
            "Exten": extension,
            "Context": context,
            "Priority": priority,
            "Timeout": timeout_ms if timeout_ms is not None else int(self.timeout * 1000),
            "Async": "true",
        }
        if variables:
            action["Variable"] = format_variables(variables)
        return await self.send_action(action)

    async def hangup(self, channel: str, cause: int = ClientConst.HANGUP_NORMAL_CLEARING) -> Packet:
        """Hang up a channel. Cause 16 is normal call clearing."""
        return await self.send_action({
            "Action": AmiAction.HANGUP.value,
            "Channel": channel,
            "Cause": str(cause),
        })

    async def redirect(self,
                       channel: str,
                       extension: str,
                       context: str = ClientConst.DEFAULT_CONTEXT,
                       priority: str = ClientConst.DEFAULT_PRIORITY) -> Packet:
        """Blind-transfer a channel to a new extension"""
        return await self.send_action({
            "Action": AmiAction.REDIRECT.value,
            "Channel": channel,
            "Exten": extension,
            "Context": context,
            "Priority": priority,
        })

    async def park(self, channel: str, park_channel: str, parking_lot: str = ClientConst.DEFAULT_PARKING_LOT) -> Packet:
        """Park channel (the customer leg) on behalf of park_channel (the agent leg)"""
        return await self.send_action({
            "Action": AmiAction.PARK.value,
            "Channel": channel,
            "Channel2": park_channel,
            "ParkingLot": parking_lot,
        })

    async def channel_status(self, channel: str = "") -> Packet:
        action = {"Action": AmiAction.STATUS.value}
        if channel:
            action["Channel"] = channel
        return await self.send_action(action)

    async def list_channels(self) -> Packet:
        return await self.send_action({"Action": AmiAction.CORE_SHOW_CHANNELS.value})
