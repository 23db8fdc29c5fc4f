"""
Shared signaling state container.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import SignalingConfig
from ..rtc.closer import SessionCloser
from ..rtc.coordinator import NegotiationCoordinator
from ..rtc.ice_servers import IceServerProvider
from ..rtc.media import AiortcMediaEngine, MediaEngine
from ..rtc.relay import IceCandidateRelay

LOG = logging.getLogger(__name__)


@dataclass
class SignalingState:
    """
    Aggregated components shared by the HTTP routes.

    The coordinator owns the session table; the relay and the closer only reach
    it through coordinator operations.
    """

    coordinator: NegotiationCoordinator
    relay: IceCandidateRelay
    closer: SessionCloser
    ice_servers: IceServerProvider

    @classmethod
    def from_config(
        cls,
        config: Optional[SignalingConfig] = None,
        *,
        engine: Optional[MediaEngine] = None,
        ice_provider: Optional[IceServerProvider] = None,
    ) -> "SignalingState":
        config = config or SignalingConfig()
        media_engine = engine or AiortcMediaEngine(ice_servers=config.ice_servers)
        coordinator = NegotiationCoordinator(
            media_engine,
            close_grace_seconds=config.close_grace_seconds,
        )
        provider = ice_provider or IceServerProvider(
            config.ice_servers,
            token=config.ice_token,
            upstream_url=config.ice_upstream_url,
            timeout=config.ice_timeout,
        )
        LOG.debug(
            "Signaling state ready (engine=%s, upstream ice=%s)",
            type(media_engine).__name__,
            bool(provider.token),
        )
        return cls(
            coordinator=coordinator,
            relay=IceCandidateRelay(coordinator, reject_unknown=config.relay_rejects_unknown),
            closer=SessionCloser(coordinator),
            ice_servers=provider,
        )

    def snapshot(self) -> dict:
        return {"sessions": len(self.coordinator)}
