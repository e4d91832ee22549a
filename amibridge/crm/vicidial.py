"""
ViciDial agent call-control API.

The HTTP side of the bridge: the CRM drives an agent's session (dial, hold,
resume, hang up) through ViciDial's /connect/functions.php endpoint, and opens
the agent panel through /agc/vicidial.php.
"""

import html
from typing import Any, Mapping
from urllib.parse import urlencode

from .relay import HttpRelay, RelayResult


class ViciDialConst:
    PROTOCOL = "http"
    SOURCE = "Mani"
    FUNCTIONS_PATH = "/connect/functions.php"
    AGENT_PATH = "/agc/vicidial.php"


class ViciDialAgent:

    def __init__(self,
                 server: str,
                 relay: HttpRelay,
                 protocol: str = ViciDialConst.PROTOCOL,
                 source: str = ViciDialConst.SOURCE):
        self.server = server
        self.relay = relay
        self.protocol = protocol
        self.source = source

    def auth_url(self, user: Mapping[str, Any]) -> str:
        """Agent login URL, from the user's ext, ext_password, voip_login, voip_password and campaign"""
        params = urlencode({
            "phone_login": user["ext"],
            "phone_pass": user["ext_password"],
            "VD_login": user["voip_login"],
            "VD_pass": user["voip_password"],
            "VD_campaign": user["campaign"],
        })
        return f"{self.protocol}://{self.server}{ViciDialConst.AGENT_PATH}?{params}"

    def auth_onload(self, user: Mapping[str, Any]) -> str:
        """`onload` attribute that opens the agent panel in a new window when the CRM page loads"""
        return f"onload=\"window.open('{html.escape(self.auth_url(user))}', '_blank');\""

    def function_url(self, params: Mapping[str, Any]) -> str:
        query = urlencode({"source": self.source, **params})
        return f"{self.protocol}://{self.server}{ViciDialConst.FUNCTIONS_PATH}?{query}"

    async def call_client(self, phone: str, agent_user: str) -> RelayResult:
        """Place an outbound call to phone as the given agent (external_dial)"""
        url = self.function_url({
            "agent_user": agent_user,
            "function": "external_dial",
            "value": phone,
        })
        return await self.relay.post(url, {"server": self.server, "phone": phone, "user": agent_user})

    async def hold_client(self, agent_user: str, phone_pass: str) -> RelayResult:
        """Park the active call (park_call PARK_CUSTOMER)"""
        return await self._agent_function(agent_user, phone_pass, "park_call", "PARK_CUSTOMER")

    async def unhold_client(self, agent_user: str, phone_pass: str) -> RelayResult:
        """Resume a parked call (park_call GRAB_CUSTOMER)"""
        return await self._agent_function(agent_user, phone_pass, "park_call", "GRAB_CUSTOMER")

    async def hangup_client(self, agent_user: str, phone_pass: str) -> RelayResult:
        return await self._agent_function(agent_user, phone_pass, "external_hangup", "1")

    async def _agent_function(self, agent_user: str, phone_pass: str, function: str, value: str) -> RelayResult:
        url = self.function_url({
            "user": agent_user,
            "pass": phone_pass,
            "agent_user": agent_user,
            "function": function,
            "value": value,
        })
        return await self.relay.post(url, {"server": self.server, "user": agent_user})
