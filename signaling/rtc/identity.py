"""
Session identity allocation.
"""

from __future__ import annotations

import uuid
from typing import Optional


def allocate_session_id(explicit: Optional[str] = None) -> str:
    """
    Return ``explicit`` unchanged when it is non-empty, otherwise a fresh
    canonical UUID4 string.

    Uniqueness against concurrently live explicit ids is the caller's concern;
    the coordinator enforces it when binding records.
    """

    if explicit:
        return explicit
    return str(uuid.uuid4())
