"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

Only one mechanism: a Bearer session token in the Authorization header.
Verification is pure computation with no DB lookup, so a token stays
valid until it expires even if its user is gone. Handlers that need
the user row (e.g. /users/me) load it themselves and 404 if missing.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from inkwell.auth.jwt import TokenError, TokenService
from inkwell.errors import Unauthenticated


class CurrentIdentity:
    """The authenticated caller, as resolved from a session token."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id})"


def get_token_service(request: Request) -> TokenService:
    """The app-wide TokenService built in create_app()."""
    return request.app.state.token_service


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no header).

    Learn: This is the "soft" auth dependency. A header that is present
    but broken still fails with 401.
    """
    if authorization is None:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Malformed Authorization header")

    try:
        user_id = tokens.verify(token.strip())
    except TokenError as e:
        raise Unauthenticated(str(e))

    return CurrentIdentity(user_id=user_id)


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if identity is None:
        raise Unauthenticated()
    return identity
