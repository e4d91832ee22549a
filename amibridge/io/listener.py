"""
Persistent AMI event listener.

Keeps a long-running AMI connection open and dispatches every inbound event
to registered handlers. Designed to run as the top-level task of a daemon:
start() only returns once stop() has been called, reconnecting after a fixed
delay whenever the connection cannot be opened, is refused at login, or drops.

Terms:
- Event = A packet with an Event field sent by the server
- Listener = A class which receives Events and hands them to the registry

Example usage:
async def listen_for_events():
    listener = AmiListener("192.0.2.10", username="manager", secret="manager_secret")
    listener.on("Newchannel", lambda e: print("ringing", e.get("CallerIDNum")))
    listener.on("Hangup", lambda e: print("hangup", e.get("Channel")))
    await listener.start()   # runs until listener.stop()

asyncio.run(listen_for_events())
"""

import asyncio
import inspect
import logging
import traceback
from enum import Enum
from typing import Callable, Iterable, Optional, Self

from .client import AmiClient, ClientConst
from .dispatch import EventHandler, EventRegistry
from .packet import ReadResult
from ..exceptions import AmiAuthenticationError, AmiError, AmiStreamClosed


# Constants
class ListenerConst:
    """Constants for the AmiListener"""
    CONNECT_TIMEOUT = 30.0
    READ_TIMEOUT = 5.0
    RECONNECT_DELAY = 5.0


class ListenerState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    LISTENING = "listening"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class AmiListener:

    def __init__(self,
                 host: str,
                 port: int = ClientConst.DEFAULT_PORT,
                 username: str = "",
                 secret: str = "",
                 *,
                 connect_timeout: float = ListenerConst.CONNECT_TIMEOUT,
                 read_timeout: float = ListenerConst.READ_TIMEOUT,
                 reconnect_delay: float = ListenerConst.RECONNECT_DELAY,
                 registry: Optional[EventRegistry] = None,
                 client_factory: Optional[Callable[[], AmiClient]] = None,
                 logger: Optional[logging.Logger] = None,
                 print_traffic: bool = False):
        self.host = host
        self.port = port
        self.username = username
        self.secret = secret
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.reconnect_delay = reconnect_delay
        self.logger = logger or logging.getLogger(__name__)
        self.print_traffic = print_traffic
        self.registry = registry or EventRegistry(logger=self.logger)
        self.client_factory = client_factory or self._default_client

        # Connection hooks, called with no arguments
        self.on_connect: Optional[Callable[[], object]] = None
        self.on_disconnect: Optional[Callable[[], object]] = None

        self.connection_attempts: int = 0
        self.events_received: int = 0
        self._state = ListenerState.IDLE
        self._client: Optional[AmiClient] = None
        self._running = False
        self._stop_event = asyncio.Event()

    def _default_client(self) -> AmiClient:
        return AmiClient(self.host, self.port,
                         connect_timeout=self.connect_timeout,
                         timeout=self.read_timeout,
                         logger=self.logger,
                         print_traffic=self.print_traffic)

    # ============================
    # EVENT REGISTRATION
    # ============================

    def on(self, events: str | Iterable[str], handler: EventHandler) -> Self:
        """Register a handler for one or more event types ('*' for every event)"""
        self.registry.on(events, handler)
        return self

    # ============================
    # LIFECYCLE
    # ============================

    @property
    def state(self) -> ListenerState:
        return self._state

    def is_listening(self) -> bool:
        return self._state == ListenerState.LISTENING

    def stop(self) -> None:
        """Ask the listener to stop at the next read timeout (or immediately if backing off)"""
        self._stop_event.set()
        self.logger.info("Stop requested.")

    async def start(self) -> None:
        """Connect, authenticate and dispatch events until stop() is called"""
        if self._running:
            self.logger.warning("AMI listener already running")
            return

        self._running = True
        self.logger.info("Service starting.")
        try:
            while not self._stop_event.is_set():
                await self._run_connection()
                if self._stop_event.is_set():
                    break
                self._set_state(ListenerState.BACKOFF)
                self.logger.warning(f"Reconnecting in {self.reconnect_delay}s...")
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self._stop_event.clear()
            self._set_state(ListenerState.STOPPED)
            self.logger.info("Service stopped.")

    async def _run_connection(self) -> None:
        """One connect, login and read-loop attempt. Every failure is logged and swallowed."""
        client = None
        listening = False
        try:
            self._set_state(ListenerState.CONNECTING)
            self.connection_attempts += 1
            client = self.client_factory()
            self._client = client
            await client.connect()

            self._set_state(ListenerState.AUTHENTICATING)
            if not await client.login(self.username, self.secret):
                raise AmiAuthenticationError("AMI login failed.")

            self.logger.info(f"Connected and authenticated to {self.host}:{self.port}")
            self._set_state(ListenerState.LISTENING)
            listening = True
            await self._call_hook(self.on_connect)
            await self._listen(client)

        except AmiError as e:
            self.logger.error(str(e))
        except Exception as e:
            self.logger.error(f"AMI listener error: {e}")
            self.logger.error(traceback.format_exc())
        finally:
            self._client = None
            if client is not None:
                await client.close()
            if listening:
                await self._call_hook(self.on_disconnect)

    async def _listen(self, client: AmiClient) -> None:
        """Read packets until stop is requested or the stream fails"""
        while not self._stop_event.is_set():
            result = await client.read_packet(timeout=self.read_timeout)
            if result is ReadResult.NO_DATA:
                continue
            if result is ReadResult.CLOSED:
                self.logger.warning("AMI connection closed by server.")
                raise AmiStreamClosed("AMI connection closed by server.")
            if not result.is_event():
                continue
            self.events_received += 1
            await self.registry.dispatch(result)

    async def _call_hook(self, hook: Optional[Callable[[], object]]) -> None:
        if hook is None:
            return
        try:
            result = hook()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error(f"Listener hook {getattr(hook, '__qualname__', hook)} failed: {e}")

    def _set_state(self, state: ListenerState) -> None:
        if state != self._state:
            self.logger.debug(f"AMI listener {self._state.value} -> {state.value}")
            self._state = state

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._running:
            self.stop()
