"""
Forwards AMI call events to the CRM.

New calls (Newchannel) and ended calls (Hangup) are POSTed to
`<base_url>/<path>/<mobile>`; the remaining call-flow events are only logged.
"""

import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import quote

from .relay import HttpRelay
from ..io import AmiEvent, AmiListener, EventRegistry, Packet


class ForwarderConst:
    INCOMING_PATH = "search_income_calls"
    HANGUP_PATH = "call_hangup"
    # Placeholder extension Asterisk uses for calls without a dialled number
    SKIP_NUMBERS = ("", "s")


class CrmForwarder:

    def __init__(self,
                 relay: HttpRelay,
                 base_url: str,
                 incoming_path: str = ForwarderConst.INCOMING_PATH,
                 hangup_path: str = ForwarderConst.HANGUP_PATH,
                 logger: Optional[logging.Logger] = None,
                 clock: Callable[[], float] = time.time):
        self.relay = relay
        self.base_url = base_url.rstrip("/")
        self.incoming_path = incoming_path.strip("/")
        self.hangup_path = hangup_path.strip("/")
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

    def register(self, target: AmiListener | EventRegistry) -> None:
        """Attach every handler to a listener or registry"""
        target.on(AmiEvent.NEWCHANNEL.value, self.on_newchannel)
        target.on(AmiEvent.HANGUP.value, self.on_hangup)
        target.on(AmiEvent.DIAL_BEGIN.value, self.on_dial_begin)
        target.on(AmiEvent.DIAL_END.value, self.on_dial_end)
        target.on([AmiEvent.HOLD.value, AmiEvent.UNHOLD.value], self.on_hold_change)
        target.on([AmiEvent.BRIDGE_ENTER.value, AmiEvent.BRIDGE_LEAVE.value], self.on_bridge_change)
        target.on([AmiEvent.AGENT_CALLED.value, AmiEvent.AGENT_CONNECT.value, AmiEvent.AGENT_COMPLETE.value],
                  self.on_agent_event)

    # ============================
    # URLS
    # ============================

    def incoming_url(self, mobile: str) -> str:
        return f"{self.base_url}/{self.incoming_path}/{quote(mobile, safe='')}"

    def hangup_url(self, mobile: str) -> str:
        return f"{self.base_url}/{self.hangup_path}/{quote(mobile, safe='')}"

    # ============================
    # FORWARDED EVENTS
    # ============================

    async def on_newchannel(self, event: Packet) -> None:
        """A channel was created (ringing)"""
        mobile = event.get("CallerIDNum", event.get("Exten", ""))
        if mobile in ForwarderConst.SKIP_NUMBERS:
            return
        await self._notify(self.incoming_url(mobile), {
            "event": AmiEvent.NEWCHANNEL.value,
            "mobile": mobile,
            "caller_id": event.get("CallerIDName", mobile),
            "channel": event.get("Channel", ""),
            "channel_state": event.get("ChannelStateDesc", ""),
            "timestamp": int(self.clock()),
        })

    async def on_hangup(self, event: Packet) -> None:
        """A channel was terminated"""
        mobile = event.get("CallerIDNum", "")
        if mobile in ForwarderConst.SKIP_NUMBERS:
            return
        await self._notify(self.hangup_url(mobile), {
            "event": AmiEvent.HANGUP.value,
            "mobile": mobile,
            "caller_id": event.get("CallerIDName", mobile),
            "channel": event.get("Channel", ""),
            "cause": event.get("Cause", ""),
            "cause_txt": event.get("Cause-txt", ""),
            "timestamp": int(self.clock()),
        })

    async def _notify(self, url: str, payload: dict[str, Any]) -> None:
        # HttpRelay.notify already swallows transport errors
        try:
            await self.relay.notify(url, payload)
        except Exception as e:
            self.logger.error(f"CRM notify to {url} raised: {e}")

    # ============================
    # LOGGED EVENTS
    # ============================

    def on_dial_begin(self, event: Packet) -> None:
        dest = event.get("DestCallerIDNum", event.get("Destination", ""))
        self.logger.info(f"[dial_begin] channel={event.get('Channel', '')} dest={dest}")

    def on_dial_end(self, event: Packet) -> None:
        self.logger.info(f"[dial_end] channel={event.get('Channel', '')} dialstatus={event.get('DialStatus', '')}")

    def on_hold_change(self, event: Packet) -> None:
        self.logger.info(f"[{event.get('Event', '').lower()}] channel={event.get('Channel', '')}")

    def on_bridge_change(self, event: Packet) -> None:
        kind = "bridge_enter" if event.get("Event") == AmiEvent.BRIDGE_ENTER.value else "bridge_leave"
        self.logger.info(f"[{kind}] channel={event.get('Channel', '')} bridge={event.get('BridgeUniqueid', '')}")

    def on_agent_event(self, event: Packet) -> None:
        self.logger.info(f"[{event.get('Event', '').lower()}] queue={event.get('Queue', '')} "
                         f"agent={event.get('MemberName', event.get('Interface', ''))} "
                         f"channel={event.get('Channel', '')}")
