"""
FastAPI surface for the signaling service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import SignalingConfig
from ..errors import SignalingError
from . import schemas
from .state import SignalingState

LOG = logging.getLogger(__name__)


def client_address(request: Request) -> str:
    """
    Resolve the caller address, honouring reverse proxy headers.
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return ""


def create_app(
    *,
    state: Optional[SignalingState] = None,
    config: Optional[SignalingConfig] = None,
    lifespan: Optional[Callable[..., object]] = None,
) -> FastAPI:
    signaling = state or SignalingState.from_config(config)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            if lifespan is not None:
                async with lifespan(app):
                    yield
            else:
                yield
        finally:
            closed = await signaling.coordinator.close_all(reason="shutdown")
            if closed:
                LOG.info("Closed %d active session(s) on shutdown", closed)

    app = FastAPI(title="WebRTC Signaling API", lifespan=app_lifespan)
    app.state.signaling = signaling
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SignalingError)
    async def _signaling_error(_request: Request, exc: SignalingError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        body = schemas.ErrorResponse(error=f"Invalid request: {details}", code=400)
        return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok", **signaling.snapshot()}

    @app.post("/webrtc/offer")
    async def handle_sdp_offer(payload: schemas.OfferRequest) -> dict:
        LOG.info(
            "Received SDP offer: type=%s, session_id=%s",
            payload.sdp.type,
            payload.session_id,
        )
        record = await signaling.coordinator.negotiate(
            payload.sdp.to_description(),
            explicit_id=payload.session_id,
            metadata=payload.metadata,
        )
        response = {
            "sdp": record.answer.to_dict(),
            "session_id": record.session_id,
        }
        if record.metadata is not None:
            response["metadata"] = record.metadata
        return response

    @app.post("/webrtc/ice-candidate")
    async def handle_ice_candidate(payload: schemas.IceCandidateRequest) -> dict:
        ack = await signaling.relay.relay(payload.session_id, payload.candidate.to_candidate())
        return ack.to_dict()

    @app.post("/webrtc/close")
    async def handle_close_session(payload: schemas.CloseSessionRequest) -> dict:
        ack = await signaling.closer.close(payload.session_id, reason=payload.reason)
        return ack.to_dict()

    @app.get("/iceservers")
    async def get_iceservers(request: Request) -> List[dict]:
        servers = await signaling.ice_servers.get_ice_servers(client_address(request))
        return [server.to_dict() for server in servers]

    return app
