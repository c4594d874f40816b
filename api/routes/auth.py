"""
api/routes/auth.py -- Registration, login, and identity endpoints.

Routes:
  POST /api/register  -- create an account; 201 {message}
  POST /api/login     -- exchange credentials for a token; 200 {token, expires_in}
  GET  /api/me        -- identity resolved from the caller's token (requires auth)

Security:
  POST /register and POST /login are rate-limited per client IP (slowapi).
  authenticate_user() provides timing equalization -- use it, never inline
      get_by_username() + verify_password().
  Unknown username and wrong password return the same invalid_credentials
      error so the response does not reveal which one it was.
  Cache-Control: no-store on login responses (they carry a token).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import Credentials, LoginResponse, MeResponse, MessageResponse
from auth.credentials import authenticate_user, register_user
from auth.dependencies import require_identity
from auth.models import Identity
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/register: public -- account creation precedes having a token
# - POST /api/login:    public -- login endpoint must be unauthenticated
# - GET  /api/me:       requires a token (require_identity)
router = APIRouter()


@limiter.limit(_settings.register_rate_limit)  # must be ABOVE @router so the middleware sees the raw endpoint
@router.post("/register", response_model=MessageResponse, status_code=201)
def register(request: Request, body: Credentials) -> MessageResponse:
    """Create an account. DuplicateUsername -> 400 duplicate_username."""
    user_store: UserStore = request.app.state.user_store
    register_user(user_store, body.username, body.password)
    return MessageResponse(message="User registered successfully")


@limiter.limit(_settings.login_rate_limit)
@router.post("/login", response_model=LoginResponse)
def login(request: Request, response: Response, body: Credentials) -> LoginResponse:
    """Verify credentials and issue a token valid for TOKEN_EXPIRE_SECONDS."""
    user_store: UserStore = request.app.state.user_store
    tokens: TokenService = request.app.state.tokens
    user = authenticate_user(user_store, body.username, body.password)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(token=tokens.issue(user.id, user.username), expires_in=tokens.expire_seconds)


@router.get("/me", response_model=MeResponse)
def me(identity: Identity = Depends(require_identity)) -> MeResponse:
    """Return the identity the access gate resolved for this request."""
    return MeResponse(user_id=identity.user_id, username=identity.username, expires_at=identity.expires_at)
