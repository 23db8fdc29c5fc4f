"""
Structural checks applied to incoming offers.

Only cheap checks live here.  SDP grammar is left to the media engine, whose
failures are reported as negotiation errors.
"""

from __future__ import annotations

from ..errors import EmptyBody, InvalidKind
from .webrtc import SdpType, SessionDescription


def validate_offer(offer: SessionDescription) -> None:
    """
    Raise :class:`InvalidKind` or :class:`EmptyBody`; first failure wins.
    """

    if offer.kind != SdpType.OFFER.value:
        raise InvalidKind("Invalid SDP type, expected 'offer'")
    if not (offer.body or "").strip():
        raise EmptyBody("SDP content cannot be empty")
