"""
Session termination.
"""

from __future__ import annotations

import logging
from typing import Optional

from .coordinator import NegotiationCoordinator
from .webrtc import Ack

LOG = logging.getLogger(__name__)

STATUS_CLOSED = "closed"


class SessionCloser:
    """Close sessions idempotently; unknown ids are reported as closed."""

    def __init__(self, coordinator: NegotiationCoordinator) -> None:
        self._coordinator = coordinator

    async def close(self, session_id: str, reason: Optional[str] = None) -> Ack:
        LOG.info("Closing WebRTC session: %s (reason: %s)", session_id, reason)
        if not await self._coordinator.close(session_id, reason=reason):
            LOG.debug("Session %s was not active; nothing to release", session_id)
        return Ack(session_id=session_id, status=STATUS_CLOSED)
