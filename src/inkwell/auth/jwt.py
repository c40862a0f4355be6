"""Session token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
A session token binds one user id ("sub") to a fixed expiry, one hour
after issuance by default. Nothing is stored server-side: a token is
valid until it expires, full stop. There is no refresh token and no
revocation list. When the token expires, the user signs in again.

The signing secret is passed in at construction time (see create_app),
so two services built with different secrets never accept each
other's tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt


class TokenError(Exception):
    """Raised when token verification fails."""


class ExpiredToken(TokenError):
    """The token's exp is in the past (the signature may still be valid)."""


class InvalidSignature(TokenError):
    """The token was not signed with the current secret."""


class MalformedToken(TokenError):
    """The token can't be decoded or is missing required claims."""


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=1),
    ):
        if not secret:
            raise ValueError("TokenService requires a non-empty secret")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        """Create a session token for a user.

        `now` is the issuance time; it defaults to the current time and
        only exists so callers can reason about expiry deterministically.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """Verify a token and return the user id it was issued for.

        Raises ExpiredToken, InvalidSignature or MalformedToken.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredToken("Token has expired")
        except jwt.InvalidSignatureError:
            raise InvalidSignature("Invalid token signature")
        except jwt.InvalidTokenError:
            raise MalformedToken("Malformed token")

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise MalformedToken("Malformed token")
