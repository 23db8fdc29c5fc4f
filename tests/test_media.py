"""Tests covering the aiortc backed media engine."""

from __future__ import annotations

import asyncio

import pytest
from aiortc import RTCConfiguration, RTCPeerConnection

from signaling.rtc import media
from signaling.rtc.media import AiortcMediaEngine, MediaEngineError, MediaSession
from signaling.rtc.webrtc import ICECandidate


async def _browser_offer(pc: RTCPeerConnection) -> str:
    pc.createDataChannel("chat")
    await pc.setLocalDescription(await pc.createOffer())
    return pc.localDescription.sdp


def test_engine_answers_real_offer_and_stops_on_cancel() -> None:
    async def scenario() -> None:
        browser = RTCPeerConnection(RTCConfiguration(iceServers=[]))
        engine = AiortcMediaEngine()
        try:
            offer_sdp = await _browser_offer(browser)
            session = await engine.create_answer("S", offer_sdp)
            assert session.session_id == "S"
            assert session.answer_sdp.startswith("v=0")
            assert "a=setup:" in session.answer_sdp

            await engine.add_candidate(session, ICECandidate(candidate=""))

            cancel_event = asyncio.Event()
            task = asyncio.create_task(engine.serve(session, cancel_event))
            await asyncio.sleep(0)
            cancel_event.set()
            await asyncio.wait_for(task, timeout=5)

            await engine.release(session)
        finally:
            await browser.close()

    asyncio.run(scenario())


def test_engine_refuses_renegotiation() -> None:
    engine = AiortcMediaEngine()
    prior = MediaSession(session_id="S", answer_sdp="v=0\r\n")

    with pytest.raises(MediaEngineError):
        asyncio.run(engine.create_answer("S", "v=0\r\n", prior_state=prior))


def test_cancelled_negotiation_closes_peer_connection(monkeypatch) -> None:
    peers = []

    class HangingPeer:
        def __init__(self, configuration=None) -> None:
            self.closed = False
            peers.append(self)

        def on(self, event):
            return lambda handler: handler

        async def setRemoteDescription(self, description) -> None:
            await asyncio.sleep(3600)

        async def close(self) -> None:
            self.closed = True

    monkeypatch.setattr(media, "RTCPeerConnection", HangingPeer)

    async def scenario() -> None:
        task = asyncio.create_task(AiortcMediaEngine().create_answer("S", "v=0\r\n"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert [peer.closed for peer in peers] == [True]
