"""
Error taxonomy shared by the signaling components and the HTTP layer.
"""

from __future__ import annotations

from typing import Optional


class SignalingError(RuntimeError):
    """Base class for signaling related errors."""

    status_code = 500

    def __init__(self, message: str, *, session_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.session_id = session_id

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": int(self.status_code)}
        if self.session_id is not None:
            payload["session_id"] = self.session_id
        return payload


class ValidationError(SignalingError):
    """Raised when an offer fails the structural preconditions."""

    status_code = 400


class InvalidKind(ValidationError):
    """Raised when the description is not an offer."""


class EmptyBody(ValidationError):
    """Raised when the SDP body is blank."""


class NegotiationError(SignalingError):
    """Raised when an offer could not be turned into a negotiation record."""


class OfferValidationFailed(NegotiationError):
    """Negotiation refused before the media engine was invoked."""

    status_code = 400

    def __init__(self, reason: ValidationError, *, session_id: Optional[str] = None) -> None:
        super().__init__(reason.message, session_id=session_id)
        self.reason = reason


class EngineFailure(NegotiationError):
    """The media engine failed to produce an answer."""

    def __init__(self, detail: str, *, session_id: Optional[str] = None) -> None:
        super().__init__(f"Failed to process SDP offer: {detail}", session_id=session_id)
        self.detail = detail


class SessionConflict(NegotiationError):
    """An explicit session id is already bound or being negotiated."""

    status_code = 409


class SessionCancelled(NegotiationError):
    """The session was closed while its offer was still being negotiated."""

    status_code = 409


class RelayError(SignalingError):
    """Base class for ICE relay failures."""


class UnknownSession(RelayError):
    """Raised by a strict relay for ids the coordinator does not know."""

    status_code = 404


__all__ = [
    "SignalingError",
    "ValidationError",
    "InvalidKind",
    "EmptyBody",
    "NegotiationError",
    "OfferValidationFailed",
    "EngineFailure",
    "SessionConflict",
    "SessionCancelled",
    "RelayError",
    "UnknownSession",
]
