"""Caller identity dependency for FastAPI.

Authentication happens at the gateway, which forwards the authenticated
worker as ``X-Worker-Id``. This module only parses and requires it.
"""

import uuid

from fastapi import HTTPException, Request

WORKER_HEADER = "X-Worker-Id"


class AuthenticatedWorker:
    """Container for the caller's worker identity."""

    def __init__(self, worker_id: uuid.UUID) -> None:
        self.worker_id = worker_id


async def verify_request(request: Request) -> AuthenticatedWorker:
    """Require a well-formed worker identity header."""
    raw = request.headers.get(WORKER_HEADER)
    if not raw:
        raise HTTPException(status_code=401, detail="Missing worker identity")
    try:
        worker_id = uuid.UUID(raw)
    except ValueError:
        raise HTTPException(status_code=401, detail="Malformed worker identity")
    return AuthenticatedWorker(worker_id=worker_id)
