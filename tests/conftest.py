"""Shared fakes for the signaling tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import pytest

from signaling.rtc.media import MediaEngine, MediaSession
from signaling.rtc.webrtc import ICECandidate

SAMPLE_OFFER = "v=0\r\no=- 123456789 123456789 IN IP4 192.168.1.1\r\ns=-\r\nt=0 0\r\n"


class FakeMediaEngine(MediaEngine):
    """Counts calls and answers every offer with a session specific SDP."""

    def __init__(self) -> None:
        self.create_calls: List[Tuple[str, str]] = []
        self.candidates: List[Tuple[str, ICECandidate]] = []
        self.served: List[str] = []
        self.stopped: List[str] = []
        self.released: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.fail_candidates = False
        self.answer_delay = 0.0

    @property
    def call_count(self) -> int:
        return len(self.create_calls)

    async def create_answer(self, session_id, offer_sdp, prior_state=None) -> MediaSession:
        self.create_calls.append((session_id, offer_sdp))
        if self.answer_delay:
            await asyncio.sleep(self.answer_delay)
        if self.fail_with is not None:
            raise self.fail_with
        return MediaSession(session_id=session_id, answer_sdp=f"v=0\r\ns=answer-{session_id}\r\n")

    async def serve(self, session, cancel_event) -> None:
        self.served.append(session.session_id)
        await cancel_event.wait()
        self.stopped.append(session.session_id)

    async def add_candidate(self, session, candidate) -> None:
        if self.fail_candidates:
            raise ValueError("transport rejected candidate")
        self.candidates.append((session.session_id, candidate))

    async def release(self, session) -> None:
        self.released.append(session.session_id)


@pytest.fixture
def engine() -> FakeMediaEngine:
    return FakeMediaEngine()
