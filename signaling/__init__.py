"""
WebRTC signaling exchange service.

The package accepts SDP offers and trickled ICE candidates over HTTP, binds
them to a session identity and hands the offer to a pluggable media engine to
obtain the SDP answer.  :mod:`signaling.client` is the caller-side
counterpart.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
