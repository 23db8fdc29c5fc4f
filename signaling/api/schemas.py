"""
Pydantic schemas mirroring the REST signaling contract.

Field names are part of the wire format and are case-sensitive.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..rtc.webrtc import ICECandidate, IceServer, SessionDescription


class SdpModel(BaseModel):
    type: str
    sdp: str

    def to_description(self) -> SessionDescription:
        return SessionDescription(kind=self.type, body=self.sdp)


class IceCandidateModel(BaseModel):
    candidate: str
    sdp_mline_index: Optional[int] = Field(default=None, alias="sdpMLineIndex", ge=0, le=65535)
    sdp_mid: Optional[str] = Field(default=None, alias="sdpMid")
    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_candidate(cls, candidate: ICECandidate) -> "IceCandidateModel":
        return cls(
            candidate=candidate.candidate,
            sdp_mline_index=candidate.sdp_mline_index,
            sdp_mid=candidate.sdp_mid,
        )

    def to_candidate(self) -> ICECandidate:
        return ICECandidate(
            candidate=self.candidate,
            sdp_mid=self.sdp_mid,
            sdp_mline_index=self.sdp_mline_index,
        )


class OfferRequest(BaseModel):
    sdp: SdpModel
    session_id: Optional[str] = None
    metadata: Optional[Any] = None


class AnswerResponse(BaseModel):
    sdp: SdpModel
    session_id: str
    ice_candidates: Optional[List[IceCandidateModel]] = None
    metadata: Optional[Any] = None


class IceCandidateRequest(BaseModel):
    session_id: str
    candidate: IceCandidateModel


class CloseSessionRequest(BaseModel):
    session_id: str
    reason: Optional[str] = None


class AckResponse(BaseModel):
    session_id: str
    status: str


class ErrorResponse(BaseModel):
    error: str
    code: int
    session_id: Optional[str] = None


class IceServerModel(BaseModel):
    urls: List[str]
    username: Optional[str] = None
    credential: Optional[str] = None

    def to_server(self) -> IceServer:
        return IceServer(urls=list(self.urls), username=self.username, credential=self.credential)
