"""
ICE server lookup.

Without an upstream token the statically configured servers are returned.
With a token the upstream allocator is asked for short-lived credentials; any
failure along the way degrades to the static list instead of surfacing an
error to the browser.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

import httpx

from .webrtc import IceServer

LOG = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = "https://restsend.com/api/iceservers"
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_STUN_SERVER = IceServer(urls=["stun:restsend.com:3478"])


class IceServerProvider:
    def __init__(
        self,
        static_servers: Sequence[IceServer] = (),
        *,
        token: Optional[str] = None,
        upstream_url: str = DEFAULT_UPSTREAM_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_id: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.static_servers: List[IceServer] = list(static_servers)
        self.token = token or None
        self.upstream_url = upstream_url
        self.timeout = float(timeout)
        self.user_id = user_id
        self._transport = transport

    def fallback_servers(self) -> List[IceServer]:
        if self.static_servers:
            return list(self.static_servers)
        return [DEFAULT_STUN_SERVER]

    async def get_ice_servers(self, client_address: str) -> List[IceServer]:
        if not self.token:
            return self.fallback_servers()

        start = time.monotonic()
        params = {"token": self.token, "user": self.user_id, "client": client_address}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.upstream_url, params=params)
        except httpx.HTTPError as exc:
            LOG.error("alloc ice servers failed: %s", exc)
            return self.fallback_servers()
        except Exception as exc:
            LOG.error("failed to query ice server allocator: %s", exc)
            return self.fallback_servers()

        if not response.is_success:
            LOG.error("ice servers request failed with status: %s", response.status_code)
            return self.fallback_servers()

        try:
            payload = response.json()
            if not isinstance(payload, list):
                raise TypeError(f"expected a list, got {type(payload).__name__}")
            servers = [IceServer.from_dict(item) for item in payload]
        except (ValueError, TypeError, AttributeError) as exc:
            LOG.error("decode ice servers failed: %s", exc)
            return self.fallback_servers()

        LOG.info(
            "get ice servers - duration: %.3fs, count: %d, userId: %s, clientIP: %s",
            time.monotonic() - start,
            len(servers),
            self.user_id,
            client_address,
        )
        return servers


__all__ = ["DEFAULT_STUN_SERVER", "DEFAULT_UPSTREAM_URL", "IceServerProvider"]
