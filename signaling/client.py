"""
Async client for the signaling API.

Each :class:`SignalingClient` holds an immutable base URL and one pooled
``httpx.AsyncClient``; nothing else is shared, so independent clients (or
independent sessions on one client) can run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel

from .api import schemas
from .rtc.webrtc import ICECandidate, IceServer, SdpType

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SignalingClientError(RuntimeError):
    """Base class for client side failures."""


class TransportError(SignalingClientError):
    """The request never produced an HTTP response (connect error, timeout)."""


class RemoteError(SignalingClientError):
    """The server answered with a non-success status."""

    def __init__(self, code: int, message: str, *, session_id: Optional[str] = None) -> None:
        super().__init__(f"Server error: {message} (code: {code})")
        self.code = int(code)
        self.message = message
        self.session_id = session_id


class ResponseDecodeError(SignalingClientError):
    """A success response did not match the expected shape."""


@dataclass(frozen=True)
class ExchangeOutcome:
    """Result of one offer/answer exchange run by :func:`exchange_many`."""

    session_id: str
    answer_sdp: Optional[str] = None
    error: Optional[SignalingClientError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SignalingClient:
    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = 0,
        retry_backoff: float = 0.5,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout, transport=transport)
        self.max_retries = max(0, int(max_retries))
        self.retry_backoff = max(0.0, float(retry_backoff))

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SignalingClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ helpers

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> httpx.Response:
        url = f"{self._base_url}{path}"
        attempt = 0
        while True:
            try:
                return await self._client.request(method, url, json=payload)
            except httpx.TransportError as exc:
                if attempt >= self.max_retries:
                    raise TransportError(f"{method} {url} failed: {exc}") from exc
                attempt += 1
                delay = self.retry_backoff * attempt
                LOG.warning(
                    "%s %s failed (%s); retrying in %.2fs (%d/%d)",
                    method,
                    url,
                    exc,
                    delay,
                    attempt,
                    self.max_retries,
                )
                await asyncio.sleep(delay)
            except httpx.RequestError as exc:
                raise TransportError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            error = schemas.ErrorResponse.model_validate(response.json())
        except ValueError:
            raise RemoteError(response.status_code, response.text or response.reason_phrase) from None
        raise RemoteError(error.code, error.error, session_id=error.session_id)

    @staticmethod
    def _decode(response: httpx.Response, model: Type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except ValueError as exc:
            raise ResponseDecodeError(f"Unexpected {model.__name__} payload: {exc}") from exc

    # ------------------------------------------------------------------ public API

    async def send_offer(
        self,
        offer_sdp: str,
        session_id: Optional[str] = None,
        metadata: Any = None,
    ) -> schemas.AnswerResponse:
        payload: Dict[str, Any] = {"sdp": {"type": SdpType.OFFER.value, "sdp": offer_sdp}}
        if session_id is not None:
            payload["session_id"] = session_id
        if metadata is not None:
            payload["metadata"] = metadata

        LOG.info("Sending SDP offer to: %s/webrtc/offer", self._base_url)
        response = await self._request("POST", "/webrtc/offer", payload)
        self._raise_for_error(response)
        answer = self._decode(response, schemas.AnswerResponse)
        LOG.info("Received SDP answer for session: %s", answer.session_id)
        return answer

    async def send_ice_candidate(self, session_id: str, candidate: ICECandidate) -> schemas.AckResponse:
        payload = {
            "session_id": session_id,
            "candidate": schemas.IceCandidateModel.from_candidate(candidate).model_dump(by_alias=True),
        }
        LOG.info("Sending ICE candidate for session: %s", session_id)
        response = await self._request("POST", "/webrtc/ice-candidate", payload)
        self._raise_for_error(response)
        return self._decode(response, schemas.AckResponse)

    async def close_session(self, session_id: str, reason: Optional[str] = None) -> schemas.AckResponse:
        payload: Dict[str, Any] = {"session_id": session_id}
        if reason is not None:
            payload["reason"] = reason
        LOG.info("Closing session: %s", session_id)
        response = await self._request("POST", "/webrtc/close", payload)
        self._raise_for_error(response)
        return self._decode(response, schemas.AckResponse)

    async def get_ice_servers(self) -> List[IceServer]:
        LOG.info("Getting ICE servers from: %s/iceservers", self._base_url)
        response = await self._request("GET", "/iceservers")
        if not response.is_success:
            raise RemoteError(
                response.status_code,
                f"Failed to get ICE servers: HTTP {response.status_code}",
            )
        try:
            entries = [schemas.IceServerModel.model_validate(item) for item in response.json()]
        except (TypeError, ValueError) as exc:
            raise ResponseDecodeError(f"Unexpected ICE server payload: {exc}") from exc
        return [entry.to_server() for entry in entries]

    # Convenience helpers -------------------------------------------------------

    async def exchange_sdp(self, offer_sdp: str) -> Tuple[str, str]:
        """Simple offer/answer exchange; returns ``(session_id, answer_sdp)``."""

        answer = await self.send_offer(offer_sdp)
        return answer.session_id, answer.sdp.sdp

    async def exchange_sdp_with_session(self, offer_sdp: str, session_id: str) -> str:
        """Offer/answer exchange under a caller chosen session id."""

        answer = await self.send_offer(offer_sdp, session_id=session_id)
        if answer.session_id != session_id:
            raise ResponseDecodeError(
                f"Answer for session '{answer.session_id}' does not match requested '{session_id}'"
            )
        return answer.sdp.sdp

    async def setup_session(
        self,
        offer_sdp: str,
        ice_candidates: Iterable[ICECandidate] = (),
    ) -> Tuple[str, str]:
        """
        Send the offer, then every candidate in order.

        Candidate failures are logged and skipped; the result only reflects the
        offer/answer outcome.
        """

        answer = await self.send_offer(offer_sdp)
        session_id = answer.session_id
        for candidate in ice_candidates:
            try:
                await self.send_ice_candidate(session_id, candidate)
            except SignalingClientError as exc:
                LOG.error("Failed to send ICE candidate: %s", exc)
        return session_id, answer.sdp.sdp


async def exchange_many(client: SignalingClient, offers: Mapping[str, str]) -> Dict[str, ExchangeOutcome]:
    """
    Run one exchange per ``session_id -> offer_sdp`` entry concurrently.

    A failing exchange is reported in its outcome and does not cancel the
    others.
    """

    async def _exchange(session_id: str, offer_sdp: str) -> ExchangeOutcome:
        try:
            answer_sdp = await client.exchange_sdp_with_session(offer_sdp, session_id)
        except SignalingClientError as exc:
            LOG.error("Exchange for session %s failed: %s", session_id, exc)
            return ExchangeOutcome(session_id=session_id, error=exc)
        return ExchangeOutcome(session_id=session_id, answer_sdp=answer_sdp)

    outcomes = await asyncio.gather(
        *(_exchange(session_id, offer_sdp) for session_id, offer_sdp in offers.items())
    )
    return {outcome.session_id: outcome for outcome in outcomes}


__all__ = [
    "ExchangeOutcome",
    "RemoteError",
    "ResponseDecodeError",
    "SignalingClient",
    "SignalingClientError",
    "TransportError",
    "exchange_many",
]
