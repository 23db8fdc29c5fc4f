"""
Negotiation coordinator.

The coordinator is the only owner of the per-session record table.  It runs
the offer validator, allocates the session id, calls the media engine once per
negotiation and keeps the background media task of every live session bound to
that session's cancellation event.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..errors import (
    EngineFailure,
    OfferValidationFailed,
    SessionCancelled,
    SessionConflict,
    ValidationError,
)
from .identity import allocate_session_id
from .media import MediaEngine, MediaSession
from .validation import validate_offer
from .webrtc import ICECandidate, SessionDescription

LOG = logging.getLogger(__name__)

DEFAULT_CLOSE_GRACE_SECONDS = 2.0


@dataclass
class NegotiationRecord:
    """
    Tracks the artefacts of one offer/answer exchange and its media task.
    """

    session_id: str
    offer: SessionDescription
    answer: SessionDescription
    metadata: Any = None
    created_at: float = field(default_factory=time.time)
    ice_candidates: List[ICECandidate] = field(default_factory=list)
    media: Optional[MediaSession] = field(default=None, repr=False)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def add_candidate(self, candidate: ICECandidate) -> None:
        self.ice_candidates.append(candidate)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "offer": self.offer.to_dict(),
            "answer": self.answer.to_dict(),
            "metadata": self.metadata,
            "created_at": float(self.created_at),
            "ice_candidates": [candidate.to_dict() for candidate in self.ice_candidates],
        }


class NegotiationCoordinator:
    """
    Orchestrates offer/answer negotiation against a :class:`MediaEngine`.

    Explicit session ids follow a reject-second-writer policy: an id that is
    already bound to a live record, or reserved by a negotiation still waiting
    on the engine, raises :class:`SessionConflict` before the engine is called.
    The lock only guards the table; it is never held across an ``await``.

    A close that targets an id still being negotiated marks it cancelled; the
    negotiation then releases the engine session instead of binding a record
    and raises :class:`SessionCancelled`.  Overlapping closes of one id all
    return only after the first close has released the engine session.
    """

    def __init__(
        self,
        engine: MediaEngine,
        *,
        close_grace_seconds: float = DEFAULT_CLOSE_GRACE_SECONDS,
    ) -> None:
        self._engine = engine
        self._close_grace = max(0.0, float(close_grace_seconds))
        self._lock = threading.Lock()
        self._records: Dict[str, NegotiationRecord] = {}
        self._reserved: Set[str] = set()
        self._cancelled: Set[str] = set()
        self._closing: Dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------ helpers

    def _reserve(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._records or session_id in self._reserved:
                raise SessionConflict(
                    f"Session '{session_id}' already has an active negotiation",
                    session_id=session_id,
                )
            self._reserved.add(session_id)

    def _release_reservation(self, session_id: str) -> None:
        with self._lock:
            self._reserved.discard(session_id)
            self._cancelled.discard(session_id)

    async def _release(self, session_id: str, media: Optional[MediaSession]) -> None:
        try:
            await self._engine.release(media)
        except Exception:
            LOG.exception("Failed to release media resources for session %s", session_id)

    async def _serve(self, record: NegotiationRecord) -> None:
        try:
            await self._engine.serve(record.media, record.cancel_event)
        except asyncio.CancelledError:
            raise
        except Exception:
            LOG.exception("Media stream error for session %s", record.session_id)
        else:
            LOG.debug("Media stream for session %s finished", record.session_id)

    async def _stop_task(self, record: NegotiationRecord) -> None:
        task = record.task
        if task is None or task.done():
            return
        done, _ = await asyncio.wait({task}, timeout=self._close_grace)
        if not done:
            LOG.warning(
                "Media task for session %s ignored cancellation for %.1fs; cancelling",
                record.session_id,
                self._close_grace,
            )
            task.cancel()
            await asyncio.wait({task})

    # ------------------------------------------------------------------ public API

    async def negotiate(
        self,
        offer: SessionDescription,
        explicit_id: Optional[str] = None,
        metadata: Any = None,
    ) -> NegotiationRecord:
        try:
            validate_offer(offer)
        except ValidationError as exc:
            raise OfferValidationFailed(exc, session_id=explicit_id) from exc

        session_id = allocate_session_id(explicit_id)
        self._reserve(session_id)
        try:
            try:
                media = await self._engine.create_answer(session_id, offer.body)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                LOG.error("Failed to process SDP offer for session %s: %s", session_id, exc)
                raise EngineFailure(str(exc) or type(exc).__name__, session_id=session_id) from exc

            record = NegotiationRecord(
                session_id=session_id,
                offer=offer,
                answer=SessionDescription.answer(media.answer_sdp),
                metadata=metadata,
                media=media,
            )
            with self._lock:
                cancelled = session_id in self._cancelled
                if not cancelled:
                    self._records[session_id] = record
            if cancelled:
                LOG.info("Session %s was closed during negotiation; discarding answer", session_id)
                await self._release(session_id, media)
                raise SessionCancelled(
                    f"Session '{session_id}' was closed during negotiation",
                    session_id=session_id,
                )
            record.task = asyncio.create_task(self._serve(record), name=f"media-{session_id}")
        finally:
            self._release_reservation(session_id)

        LOG.info("Generated SDP answer for session: %s", session_id)
        return record

    def get(self, session_id: str) -> Optional[NegotiationRecord]:
        with self._lock:
            return self._records.get(session_id)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    async def attach_candidate(self, session_id: str, candidate: ICECandidate) -> bool:
        """
        Record ``candidate`` on the session and forward it to the engine.

        Returns ``False`` for unknown sessions.  Engine failures are logged.
        """

        record = self.get(session_id)
        if record is None:
            return False
        record.add_candidate(candidate)
        try:
            await self._engine.add_candidate(record.media, candidate)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOG.warning("Engine rejected ICE candidate for session %s: %s", session_id, exc)
        return True

    async def close(self, session_id: str, reason: Optional[str] = None) -> bool:
        """
        Cancel, release and forget ``session_id``.  Returns ``False`` when the
        session was not active, which callers treat as success.  A session
        still being negotiated is marked cancelled and reported as closed.
        """

        pending: Optional[asyncio.Event] = None
        reserved = False
        with self._lock:
            record = self._records.pop(session_id, None)
            if record is not None:
                done = self._closing[session_id] = asyncio.Event()
            else:
                pending = self._closing.get(session_id)
                reserved = session_id in self._reserved
                if reserved:
                    self._cancelled.add(session_id)
        if record is None:
            if pending is not None:
                await pending.wait()
                return False
            if reserved:
                LOG.info("Session %s cancelled during negotiation (reason: %s)", session_id, reason)
                return True
            return False

        try:
            record.cancel_event.set()
            await self._stop_task(record)
            await self._release(session_id, record.media)
        finally:
            with self._lock:
                self._closing.pop(session_id, None)
            done.set()
        LOG.info("Session %s closed (reason: %s)", session_id, reason)
        return True

    async def close_all(self, reason: str = "shutdown") -> int:
        closed = 0
        for session_id in self.session_ids():
            if await self.close(session_id, reason=reason):
                closed += 1
        return closed


__all__ = ["DEFAULT_CLOSE_GRACE_SECONDS", "NegotiationCoordinator", "NegotiationRecord"]
