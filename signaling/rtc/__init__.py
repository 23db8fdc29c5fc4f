"""
WebRTC negotiation components.
"""

from __future__ import annotations

from .closer import SessionCloser
from .coordinator import NegotiationCoordinator, NegotiationRecord
from .ice_servers import IceServerProvider
from .media import AiortcMediaEngine, MediaEngine, MediaSession
from .relay import IceCandidateRelay
from .webrtc import Ack, ICECandidate, IceServer, SdpType, SessionDescription

__all__ = [
    "Ack",
    "AiortcMediaEngine",
    "ICECandidate",
    "IceCandidateRelay",
    "IceServer",
    "IceServerProvider",
    "MediaEngine",
    "MediaSession",
    "NegotiationCoordinator",
    "NegotiationRecord",
    "SdpType",
    "SessionCloser",
    "SessionDescription",
]
