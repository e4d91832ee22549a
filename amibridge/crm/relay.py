"""
Outbound HTTP relay.

POSTs JSON payloads to the CRM and to the ViciDial agent API. Every request is
bounded by the configured connect and total timeouts, so a slow endpoint can
only stall the event loop that awaits it for a known interval.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..exceptions import RelayError


class RelayConst:
    """Constants for the HttpRelay"""
    DEFAULT_TIMEOUT = 30.0
    CONNECT_TIMEOUT = 10.0


@dataclass
class RelayResult:
    success: bool
    status: int
    response: str
    data: dict[str, Any] = field(default_factory=dict)


class HttpRelay:

    def __init__(self,
                 timeout: float = RelayConst.DEFAULT_TIMEOUT,
                 connect_timeout: float = RelayConst.CONNECT_TIMEOUT,
                 verify: bool = True,
                 logger: Optional[logging.Logger] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.verify = verify
        self.logger = logger or logging.getLogger(__name__)
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            verify=verify,
        )

    async def post(self, url: str, data: dict[str, Any]) -> RelayResult:
        """POST data wrapped in {"user": ...}, as the ViciDial API expects"""
        return await self._post(url, {"user": data}, data)

    async def post_json(self, url: str, data: dict[str, Any]) -> RelayResult:
        """POST data as a plain JSON object"""
        return await self._post(url, data, data)

    async def notify(self, url: str, payload: dict[str, Any]) -> Optional[RelayResult]:
        """Best-effort CRM notification. Transport failures are logged, not raised."""
        try:
            result = await self.post_json(url, payload)
        except RelayError as e:
            self.logger.warning(f"CRM notify failed: {e}")
            return None
        if not result.success:
            self.logger.warning(f"CRM notify to {url} returned HTTP {result.status}")
        return result

    async def _post(self, url: str, body: dict[str, Any], data: dict[str, Any]) -> RelayResult:
        try:
            resp = await self._client.post(url, json=body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RelayError(f"POST {url} failed: {e.__class__.__name__}: {e}") from e
        except (TypeError, ValueError) as e:
            # json encoding of the body
            raise RelayError(f"POST {url} has an unencodable payload: {e}") from e
        return RelayResult(
            success=200 <= resp.status_code < 300,
            status=resp.status_code,
            response=resp.text,
            data=data,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
