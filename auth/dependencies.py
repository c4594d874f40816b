"""
auth/dependencies.py -- FastAPI Depends() helpers for the access gate.

The gate reads the raw token from the Authorization header. The header value
IS the token: there is no "Bearer " prefix handling, so "Bearer <jwt>" fails
verification like any other malformed token.

Transitions per request:
  header absent or empty  -> MissingToken  (401)
  verification fails      -> InvalidToken  (403)
  verification succeeds   -> Identity attached to request.state.identity

The errors propagate to the exception handlers in api/main.py, which render
them with the shared error envelope.

Apply it once per router, not per route:
    router = APIRouter(dependencies=[Depends(require_identity)])

Layer rule: no imports from web/ or resources/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Identity
from auth.tokens import TokenService
from core.errors import InvalidToken, MissingToken

logger = logging.getLogger("eventdesk.auth")


def require_identity(request: Request) -> Identity:
    """Require a valid token. Returns the Identity and stores it on request.state.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(require_identity)): ...
    """
    tokens: TokenService = request.app.state.tokens
    token = request.headers.get("Authorization")
    try:
        identity = tokens.verify(token)
    except MissingToken:
        logger.info("Rejected %s %s: no token", request.method, request.url.path)
        raise
    except InvalidToken:
        logger.warning("Rejected %s %s: invalid token", request.method, request.url.path)
        raise
    request.state.identity = identity
    return identity
