"""Tests for the ViciDial agent call-control API."""

import json
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from amibridge.crm import HttpRelay, ViciDialAgent

USER = {
    "ext": "8001",
    "ext_password": "phonepass",
    "voip_login": "agent01",
    "voip_password": "agentpass",
    "campaign": "SALES",
}


@pytest.fixture
def captured():
    return []


@pytest.fixture
def agent(captured):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, text="SUCCESS")

    relay = HttpRelay(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return ViciDialAgent("10.0.0.5", relay)


def _query(request: httpx.Request) -> list[tuple[str, str]]:
    return parse_qsl(urlsplit(str(request.url)).query)


def test_auth_url(agent):
    url = urlsplit(agent.auth_url(USER))
    assert (url.scheme, url.netloc, url.path) == ("http", "10.0.0.5", "/agc/vicidial.php")
    assert parse_qsl(url.query) == [
        ("phone_login", "8001"),
        ("phone_pass", "phonepass"),
        ("VD_login", "agent01"),
        ("VD_pass", "agentpass"),
        ("VD_campaign", "SALES"),
    ]


def test_auth_onload_opens_agent_panel(agent):
    url = agent.auth_url(USER)
    assert agent.auth_onload(USER) == (
        "onload=\"window.open('" + url.replace("&", "&amp;") + "', '_blank');\""
    )


def test_function_url_puts_source_first():
    agent = ViciDialAgent("pbx.local", relay=None, protocol="https", source="CRM")
    url = agent.function_url({"function": "external_dial", "value": "0501234567"})
    assert url == "https://pbx.local/connect/functions.php?source=CRM&function=external_dial&value=0501234567"


@pytest.mark.asyncio
async def test_call_client(agent, captured):
    result = await agent.call_client("0501234567", "agent01")

    assert result.success is True
    assert result.response == "SUCCESS"
    request = captured[0]
    assert request.url.path == "/connect/functions.php"
    assert _query(request) == [
        ("source", "Mani"),
        ("agent_user", "agent01"),
        ("function", "external_dial"),
        ("value", "0501234567"),
    ]
    assert json.loads(request.content) == {"user": {"server": "10.0.0.5", "phone": "0501234567", "user": "agent01"}}


@pytest.mark.parametrize("method, function, value", [
    ("hold_client", "park_call", "PARK_CUSTOMER"),
    ("unhold_client", "park_call", "GRAB_CUSTOMER"),
    ("hangup_client", "external_hangup", "1"),
])
@pytest.mark.asyncio
async def test_agent_functions(agent, captured, method, function, value):
    await getattr(agent, method)("agent01", "phonepass")

    request = captured[0]
    assert _query(request) == [
        ("source", "Mani"),
        ("user", "agent01"),
        ("pass", "phonepass"),
        ("agent_user", "agent01"),
        ("function", function),
        ("value", value),
    ]
    assert json.loads(request.content) == {"user": {"server": "10.0.0.5", "user": "agent01"}}
