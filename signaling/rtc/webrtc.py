"""
In-memory WebRTC signaling data model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SdpType(str, Enum):
    """Session description kinds defined by JSEP."""

    OFFER = "offer"
    ANSWER = "answer"
    PRANSWER = "pranswer"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class SessionDescription:
    """
    Opaque SDP blob tagged with its direction of travel.

    ``kind`` is kept as the raw string received on the wire so that unknown
    kinds can still be reported by the validator instead of failing decoding.
    """

    kind: str
    body: str

    @classmethod
    def offer(cls, body: str) -> "SessionDescription":
        return cls(kind=SdpType.OFFER.value, body=body)

    @classmethod
    def answer(cls, body: str) -> "SessionDescription":
        return cls(kind=SdpType.ANSWER.value, body=body)

    def to_dict(self) -> dict:
        return {"type": str(self.kind), "sdp": self.body}


@dataclass(frozen=True)
class ICECandidate:
    """Serialisable ICE candidate container."""

    candidate: str
    sdp_mid: Optional[str] = None
    sdp_mline_index: Optional[int] = None

    @property
    def is_end_of_candidates(self) -> bool:
        return not self.candidate.strip()

    def to_dict(self) -> dict:
        return {
            "candidate": self.candidate,
            "sdpMLineIndex": self.sdp_mline_index,
            "sdpMid": self.sdp_mid,
        }


@dataclass(frozen=True)
class IceServer:
    """STUN/TURN server descriptor handed to browsers."""

    urls: List[str] = field(default_factory=list)
    username: Optional[str] = None
    credential: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: dict) -> "IceServer":
        urls = payload.get("urls") or []
        if isinstance(urls, str):
            urls = [urls]
        return cls(
            urls=[str(url) for url in urls],
            username=payload.get("username"),
            credential=payload.get("credential"),
        )

    def to_dict(self) -> dict:
        payload: dict = {"urls": list(self.urls)}
        if self.username is not None:
            payload["username"] = self.username
        if self.credential is not None:
            payload["credential"] = self.credential
        return payload


@dataclass(frozen=True)
class Ack:
    """Acknowledgment returned by the relay and the closer."""

    session_id: str
    status: str

    def to_dict(self) -> dict:
        return {"session_id": self.session_id, "status": self.status}


__all__ = ["Ack", "ICECandidate", "IceServer", "SdpType", "SessionDescription"]
