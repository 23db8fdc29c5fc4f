"""
Media engine boundary.

The coordinator only needs two things from the media side: turn an offer into
an answer, and keep serving the negotiated session until it is told to stop.
:class:`AiortcMediaEngine` realises that contract with aiortc; tests and
alternative backends subclass :class:`MediaEngine`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole
from aiortc.sdp import candidate_from_sdp

from .webrtc import ICECandidate, IceServer

LOG = logging.getLogger(__name__)


class MediaEngineError(RuntimeError):
    """Raised by engines when a session cannot be set up or served."""


@dataclass
class MediaSession:
    """
    Handle returned by :meth:`MediaEngine.create_answer`.

    ``handle`` is private to the engine that produced it.
    """

    session_id: str
    answer_sdp: str
    handle: Any = None


class MediaEngine:
    """
    Base class for media engines.
    """

    async def create_answer(
        self,
        session_id: str,
        offer_sdp: str,
        prior_state: Optional[MediaSession] = None,
    ) -> MediaSession:
        raise NotImplementedError

    async def serve(self, session: MediaSession, cancel_event: asyncio.Event) -> None:
        """
        Run the media flow until ``cancel_event`` is set or a fatal error occurs.
        """

        await cancel_event.wait()

    async def add_candidate(self, session: MediaSession, candidate: ICECandidate) -> None:
        """
        Feed a remote trickled candidate to the transport.  Optional.
        """

    async def release(self, session: MediaSession) -> None:
        """
        Release backing resources.  Subclasses should override when required.
        """


@dataclass
class _PeerState:
    pc: RTCPeerConnection
    sink: MediaBlackhole
    failed: asyncio.Event = field(default_factory=asyncio.Event)


class AiortcMediaEngine(MediaEngine):
    """
    Answer offers with an aiortc peer connection and sink inbound tracks.
    """

    def __init__(self, ice_servers: Sequence[IceServer] = ()) -> None:
        self._ice_servers: List[IceServer] = list(ice_servers)

    def _configuration(self) -> RTCConfiguration:
        servers = [
            RTCIceServer(urls=list(server.urls), username=server.username, credential=server.credential)
            for server in self._ice_servers
            if server.urls
        ]
        return RTCConfiguration(iceServers=servers)

    async def create_answer(
        self,
        session_id: str,
        offer_sdp: str,
        prior_state: Optional[MediaSession] = None,
    ) -> MediaSession:
        if prior_state is not None:
            raise MediaEngineError("renegotiation is not supported")

        pc = RTCPeerConnection(configuration=self._configuration())
        state = _PeerState(pc=pc, sink=MediaBlackhole())

        @pc.on("track")
        def _on_track(track) -> None:
            LOG.debug("Session %s received %s track", session_id, track.kind)
            state.sink.addTrack(track)

        @pc.on("connectionstatechange")
        async def _on_connection_state() -> None:
            LOG.debug("Session %s connection state: %s", session_id, pc.connectionState)
            if pc.connectionState == "failed":
                state.failed.set()

        try:
            await pc.setRemoteDescription(RTCSessionDescription(sdp=offer_sdp, type="offer"))
            answer = await pc.createAnswer()
            await pc.setLocalDescription(answer)
        except BaseException:
            await pc.close()
            raise

        return MediaSession(session_id=session_id, answer_sdp=pc.localDescription.sdp, handle=state)

    async def serve(self, session: MediaSession, cancel_event: asyncio.Event) -> None:
        state: _PeerState = session.handle
        await state.sink.start()
        waiters = [
            asyncio.ensure_future(cancel_event.wait()),
            asyncio.ensure_future(state.failed.wait()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await state.sink.stop()

        if state.failed.is_set() and not cancel_event.is_set():
            raise MediaEngineError("peer connection failed")

    async def add_candidate(self, session: MediaSession, candidate: ICECandidate) -> None:
        if candidate.is_end_of_candidates:
            return
        state: _PeerState = session.handle
        raw = candidate.candidate
        if raw.startswith("candidate:"):
            raw = raw.split(":", 1)[1]
        parsed = candidate_from_sdp(raw)
        parsed.sdpMid = candidate.sdp_mid
        parsed.sdpMLineIndex = candidate.sdp_mline_index
        await state.pc.addIceCandidate(parsed)

    async def release(self, session: MediaSession) -> None:
        state: _PeerState = session.handle
        await state.pc.close()


__all__ = ["AiortcMediaEngine", "MediaEngine", "MediaEngineError", "MediaSession"]
