"""
Trickle ICE relay.
"""

from __future__ import annotations

import logging

from ..errors import UnknownSession
from .coordinator import NegotiationCoordinator
from .webrtc import Ack, ICECandidate

LOG = logging.getLogger(__name__)

STATUS_RECEIVED = "received"


class IceCandidateRelay:
    """
    Acknowledge trickled candidates and hand them to the owning session.

    Unknown session ids are acknowledged as well unless ``reject_unknown`` is
    set, so clients delivering candidates at-least-once never see an error for
    a late or duplicate candidate.
    """

    def __init__(self, coordinator: NegotiationCoordinator, *, reject_unknown: bool = False) -> None:
        self._coordinator = coordinator
        self.reject_unknown = bool(reject_unknown)

    async def relay(self, session_id: str, candidate: ICECandidate) -> Ack:
        LOG.info("Received ICE candidate for session: %s", session_id)
        known = await self._coordinator.attach_candidate(session_id, candidate)
        if not known:
            if self.reject_unknown:
                raise UnknownSession(f"Unknown session '{session_id}'", session_id=session_id)
            LOG.debug("Acknowledging candidate for unknown session %s", session_id)
        return Ack(session_id=session_id, status=STATUS_RECEIVED)
