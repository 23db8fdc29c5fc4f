"""
Signaling server entrypoint.

Resolves configuration, initialises logging and runs the FastAPI application
under uvicorn.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .api.server import create_app
from .api.state import SignalingState
from .config import SignalingConfig, load_config
from .utils.logging import configure_logging

LOG = logging.getLogger(__name__)


async def serve(config: SignalingConfig) -> None:
    """
    Run the signaling API inside an asyncio loop.

    uvicorn installs its own SIGINT/SIGTERM handlers and drives the lifespan
    shutdown, which closes every active session.
    """

    import uvicorn

    state = SignalingState.from_config(config)

    @asynccontextmanager
    async def lifespan(_app) -> AsyncIterator[None]:
        LOG.info("Signaling server listening on %s:%s", config.host, config.port)
        try:
            yield
        finally:
            LOG.info("Signaling server shutting down")

    app = create_app(state=state, config=config, lifespan=lifespan)
    server_config = uvicorn.Config(
        app=app,
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=config.log_level.lower(),
        reload=False,
    )
    server = uvicorn.Server(config=server_config)
    await server.serve()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="WebRTC signaling server")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--host", default=None, help="bind host for the API server")
    parser.add_argument("--port", type=int, default=None, help="bind port for the API server")
    parser.add_argument("--log-level", default=None, help="logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SignalingConfig:
    config = load_config(args.config)
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def run(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    config = build_config(args)
    configure_logging(config.log_level)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        LOG.info("Signaling server interrupted by user.")


if __name__ == "__main__":
    run()
