"""Auth API — sign-up, login, Google sign-in.

Learn: Routes for getting a session token:
- POST /auth/signup → create a local account → token
- POST /auth/login → email/password → token
- POST /auth/google → Google ID token → token (account created on first use)

Every route returns the same TokenResponse. There is no refresh
endpoint: when the token expires the client signs in again.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.dependencies import get_token_service
from inkwell.auth.jwt import TokenService
from inkwell.db.engine import get_db
from inkwell.db.models import User
from inkwell.schemas.auth import (
    GoogleLoginRequest,
    LoginRequest,
    SignupRequest,
    TokenResponse,
)
from inkwell.services.identity_service import IdentityService

router = APIRouter(prefix="/auth")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> IdentityService:
    return IdentityService(
        db,
        bcrypt_rounds=request.app.state.settings.bcrypt_rounds,
        google=request.app.state.google_verifier,
    )


def _token_for(user: User, tokens: TokenService) -> TokenResponse:
    return TokenResponse(
        token=tokens.issue(user.id),
        expires_in=int(tokens.ttl.total_seconds()),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(
    body: SignupRequest,
    svc: IdentityService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a local account and sign it in."""
    user = await svc.signup(name=body.name, email=body.email, password=body.password)
    return _token_for(user, tokens)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    svc: IdentityService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email and password."""
    user = await svc.login(email=body.email, password=body.password)
    return _token_for(user, tokens)


@router.post("/google", response_model=TokenResponse)
async def google_login(
    body: GoogleLoginRequest,
    svc: IdentityService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Sign in with a Google ID token."""
    user = await svc.google_login(body.token_id)
    return _token_for(user, tokens)
