"""Quick demo script for the signaling client.

Sends an SDP offer read from a file to a running signaling server, prints the
answer, trickles any candidates given on the command line and closes the
session.

Examples
--------
Exchange an offer exported from a browser::

    python scripts/demo_client.py --offer offer.sdp

Use a fixed session id and a remote server::

    python scripts/demo_client.py --base-url http://10.0.0.5:8080 \
        --offer offer.sdp --session-id demo-1 \
        --candidate "candidate:1 1 UDP 2013266431 192.168.1.1 54400 typ host"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Iterable

from signaling.client import SignalingClient, SignalingClientError
from signaling.rtc.webrtc import ICECandidate
from signaling.utils.logging import configure_logging


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="WebRTC signaling client demo")
    parser.add_argument("--base-url", default="http://127.0.0.1:8080", help="signaling server URL")
    parser.add_argument("--offer", required=True, type=Path, help="file holding the offer SDP")
    parser.add_argument("--session-id", default=None, help="explicit session id")
    parser.add_argument(
        "--candidate",
        action="append",
        default=[],
        help="ICE candidate line to trickle after the answer (repeatable).",
    )
    parser.add_argument("--retries", type=int, default=2, help="retries on transport failures")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    offer_sdp = args.offer.read_text(encoding="utf-8")
    async with SignalingClient(args.base_url, max_retries=args.retries) as client:
        servers = await client.get_ice_servers()
        print(f"ICE servers: {[server.urls for server in servers]}")

        answer = await client.send_offer(offer_sdp, session_id=args.session_id)
        session_id = answer.session_id
        print(f"Session {session_id} answer:\n{answer.sdp.sdp}")

        for index, line in enumerate(args.candidate):
            ack = await client.send_ice_candidate(
                session_id,
                ICECandidate(candidate=line, sdp_mid="0", sdp_mline_index=0),
            )
            print(f"Candidate {index}: {ack.status}")

        closed = await client.close_session(session_id, reason="demo finished")
        print(f"Session {closed.session_id}: {closed.status}")
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    try:
        return asyncio.run(run(args))
    except SignalingClientError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
