"""Tests covering the HTTP signaling contract."""

from __future__ import annotations

import re
from typing import List

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_OFFER, FakeMediaEngine
from signaling.api.server import create_app
from signaling.api.state import SignalingState
from signaling.config import SignalingConfig
from signaling.rtc.ice_servers import IceServerProvider
from signaling.rtc.webrtc import IceServer

UUID_PATTERN = re.compile(r"^[0-9a-f-]{36}$")


@pytest.fixture
def state(engine: FakeMediaEngine) -> SignalingState:
    return SignalingState.from_config(SignalingConfig(), engine=engine)


@pytest.fixture
def client(state: SignalingState):
    with TestClient(create_app(state=state)) as test_client:
        yield test_client


def _offer(sdp: str = SAMPLE_OFFER, **extra) -> dict:
    return {"sdp": {"type": "offer", "sdp": sdp}, **extra}


def test_offer_without_session_id_returns_answer(client: TestClient, engine: FakeMediaEngine) -> None:
    response = client.post("/webrtc/offer", json=_offer("v=0..."))

    assert response.status_code == 200
    body = response.json()
    assert body["sdp"]["type"] == "answer"
    assert UUID_PATTERN.match(body["session_id"])
    assert body["sdp"]["sdp"] == f"v=0\r\ns=answer-{body['session_id']}\r\n"
    assert "metadata" not in body
    assert "ice_candidates" not in body
    assert engine.create_calls == [(body["session_id"], "v=0...")]


def test_offer_with_explicit_session_id_and_metadata(client: TestClient) -> None:
    metadata = {"test": "data", "nested": {"list": [1, 2, None]}}
    response = client.post("/webrtc/offer", json=_offer(session_id="S", metadata=metadata))

    assert response.status_code == 200
    body = response.json()
    assert body["session_id"] == "S"
    assert body["metadata"] == metadata


def test_empty_sdp_is_rejected(client: TestClient, engine: FakeMediaEngine) -> None:
    response = client.post("/webrtc/offer", json=_offer(""))

    assert response.status_code == 400
    body = response.json()
    assert "empty" in body["error"].lower()
    assert body["code"] == 400
    assert "session_id" not in body
    assert engine.call_count == 0


def test_wrong_sdp_type_is_rejected(client: TestClient, engine: FakeMediaEngine) -> None:
    response = client.post(
        "/webrtc/offer",
        json={"sdp": {"type": "answer", "sdp": SAMPLE_OFFER}, "session_id": "S"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid SDP type, expected 'offer'",
        "code": 400,
        "session_id": "S",
    }
    assert engine.call_count == 0


def test_engine_failure_surfaces_session_id(client: TestClient, engine: FakeMediaEngine) -> None:
    engine.fail_with = RuntimeError("no compatible codecs")

    response = client.post("/webrtc/offer", json=_offer("garbage"))

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == 500
    assert body["error"] == "Failed to process SDP offer: no compatible codecs"
    assert UUID_PATTERN.match(body["session_id"])


def test_duplicate_active_session_id_conflicts(client: TestClient) -> None:
    assert client.post("/webrtc/offer", json=_offer(session_id="S")).status_code == 200

    response = client.post("/webrtc/offer", json=_offer(session_id="S"))

    assert response.status_code == 409
    assert response.json()["code"] == 409
    assert response.json()["session_id"] == "S"


@pytest.mark.parametrize(
    "payload",
    [{}, {"sdp": "v=0"}, {"sdp": {"type": "offer"}}, {"sdp": {"sdp": "v=0"}}],
)
def test_malformed_offer_body_is_a_bad_request(client: TestClient, payload: dict) -> None:
    response = client.post("/webrtc/offer", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == 400
    assert body["error"].startswith("Invalid request")


def test_ice_candidate_for_unknown_session_is_acknowledged(client: TestClient) -> None:
    response = client.post(
        "/webrtc/ice-candidate",
        json={
            "session_id": "unknown",
            "candidate": {
                "candidate": "candidate:1 1 UDP 2013266431 192.168.1.1 54400 typ host",
                "sdpMLineIndex": 0,
                "sdpMid": "0",
            },
        },
    )

    assert response.status_code == 200
    assert response.json() == {"session_id": "unknown", "status": "received"}


def test_ice_candidate_is_forwarded_for_known_session(client: TestClient, engine: FakeMediaEngine) -> None:
    client.post("/webrtc/offer", json=_offer(session_id="S"))

    response = client.post(
        "/webrtc/ice-candidate",
        json={"session_id": "S", "candidate": {"candidate": ""}},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "received"
    assert len(engine.candidates) == 1
    session_id, candidate = engine.candidates[0]
    assert session_id == "S"
    assert candidate.is_end_of_candidates
    assert candidate.sdp_mid is None and candidate.sdp_mline_index is None


def test_strict_relay_returns_not_found(engine: FakeMediaEngine) -> None:
    state = SignalingState.from_config(SignalingConfig(relay_rejects_unknown=True), engine=engine)
    with TestClient(create_app(state=state)) as strict_client:
        response = strict_client.post(
            "/webrtc/ice-candidate",
            json={"session_id": "ghost", "candidate": {"candidate": "candidate:1 1 UDP 1 10.0.0.1 9 typ host"}},
        )

    assert response.status_code == 404
    assert response.json()["code"] == 404


def test_close_twice_succeeds(client: TestClient, engine: FakeMediaEngine) -> None:
    client.post("/webrtc/offer", json=_offer(session_id="S"))

    first = client.post("/webrtc/close", json={"session_id": "S", "reason": "Test completed"})
    second = client.post("/webrtc/close", json={"session_id": "S"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json() == {"session_id": "S", "status": "closed"}
    assert second.json() == {"session_id": "S", "status": "closed"}
    assert engine.released == ["S"]


def test_closed_session_id_can_be_negotiated_again(client: TestClient) -> None:
    assert client.post("/webrtc/offer", json=_offer(session_id="S")).status_code == 200
    client.post("/webrtc/close", json={"session_id": "S"})

    assert client.post("/webrtc/offer", json=_offer(session_id="S")).status_code == 200


def test_iceservers_without_token_returns_static_list(engine: FakeMediaEngine) -> None:
    config = SignalingConfig(ice_servers=[IceServer(urls=["stun:stun.example.com:3478"])])
    state = SignalingState.from_config(config, engine=engine)
    with TestClient(create_app(state=state)) as test_client:
        response = test_client.get("/iceservers")

    assert response.status_code == 200
    assert response.json() == [{"urls": ["stun:stun.example.com:3478"]}]


def test_iceservers_default_stun_when_nothing_configured(client: TestClient) -> None:
    response = client.get("/iceservers")

    assert response.json() == [{"urls": ["stun:restsend.com:3478"]}]


def test_iceservers_passes_forwarded_client_address(engine: FakeMediaEngine) -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["client"])
        return httpx.Response(200, json=[{"urls": ["turn:t.example.com"], "username": "a", "credential": "b"}])

    provider = IceServerProvider(token="tok", transport=httpx.MockTransport(handler))
    state = SignalingState.from_config(SignalingConfig(), engine=engine, ice_provider=provider)
    with TestClient(create_app(state=state)) as test_client:
        forwarded = test_client.get("/iceservers", headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"})
        real_ip = test_client.get("/iceservers", headers={"X-Real-IP": "198.51.100.8"})
        direct = test_client.get("/iceservers")

    assert forwarded.json() == [{"urls": ["turn:t.example.com"], "username": "a", "credential": "b"}]
    assert real_ip.status_code == 200 and direct.status_code == 200
    assert seen == ["198.51.100.7", "198.51.100.8", "testclient"]


def test_healthz_reports_active_sessions(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok", "sessions": 0}
    client.post("/webrtc/offer", json=_offer(session_id="S"))
    assert client.get("/healthz").json() == {"status": "ok", "sessions": 1}


def test_shutdown_closes_active_sessions(state: SignalingState, engine: FakeMediaEngine) -> None:
    with TestClient(create_app(state=state)) as test_client:
        for name in ("a", "b"):
            test_client.post("/webrtc/offer", json=_offer(session_id=name))

    assert sorted(engine.released) == ["a", "b"]
    assert len(state.coordinator) == 0
