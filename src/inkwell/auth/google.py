"""Google ID token verification.

Learn: The frontend runs Google Identity Services and posts the
resulting ID token (a JWT signed by Google) to /auth/google. Before we
trust a single claim in it we check:

1. the signature, against Google's published JSON Web Key Set (JWKS),
   looked up by the token header's "kid";
2. "aud" equals our registered client id (a token minted for another
   app must not log anyone into ours);
3. "iss" is Google, and exp/iat are present and valid;
4. an email is present and Google hasn't marked it unverified.

The JWKS is fetched with httpx and cached. Google rotates keys, so an
unknown "kid" triggers one refetch before the token is rejected.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx
import jwt
import structlog

logger = structlog.get_logger()

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleTokenError(Exception):
    """Raised when an ID token can't be verified."""


@dataclass(frozen=True)
class GoogleClaims:
    """The verified subset of a Google ID token we use."""

    sub: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class GoogleTokenVerifier:
    """Verifies Google ID tokens for one OAuth client id."""

    def __init__(
        self,
        client_id: str,
        certs_url: str = "https://www.googleapis.com/oauth2/v3/certs",
        cache_seconds: int = 3600,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.certs_url = certs_url
        self.cache_seconds = cache_seconds
        self._http = http
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    async def verify(self, id_token: str) -> GoogleClaims:
        """Verify an ID token and return its claims.

        Raises GoogleTokenError for anything short of a fully valid token.
        """
        if not self.client_id:
            raise GoogleTokenError("Google sign-in is not configured")

        try:
            header = jwt.get_unverified_header(id_token)
        except jwt.InvalidTokenError as e:
            raise GoogleTokenError(f"Undecodable ID token: {e}")

        kid = header.get("kid")
        if not kid:
            raise GoogleTokenError("ID token has no key id")

        key = await self._signing_key(kid)
        try:
            payload = jwt.decode(
                id_token,
                key.key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"require": ["iss", "aud", "sub", "iat", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise GoogleTokenError(f"ID token rejected: {e}")

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise GoogleTokenError("ID token was not issued by Google")

        email = payload.get("email")
        if not email:
            raise GoogleTokenError("ID token has no email claim")
        if payload.get("email_verified") in (False, "false"):
            raise GoogleTokenError("Google account email is not verified")

        return GoogleClaims(
            sub=str(payload["sub"]),
            email=email,
            name=payload.get("name"),
            picture=payload.get("picture"),
        )

    # ─── JWKS cache ─────────────────────────────────────

    async def _signing_key(self, kid: str) -> jwt.PyJWK:
        if self._cache_expired():
            await self._refresh_keys()
        key = self._keys.get(kid)
        if key is None:
            # Keys may have rotated since the last fetch
            await self._refresh_keys()
            key = self._keys.get(kid)
        if key is None:
            raise GoogleTokenError("ID token signed with an unknown key")
        return key

    def _cache_expired(self) -> bool:
        return time.monotonic() - self._fetched_at > self.cache_seconds

    async def _refresh_keys(self) -> None:
        async with self._lock:
            try:
                data = await self._fetch_jwks()
                jwk_set = jwt.PyJWKSet.from_dict(data)
            except (httpx.HTTPError, ValueError, jwt.PyJWTError) as e:
                logger.warning("google.jwks_fetch_failed", error=str(e))
                raise GoogleTokenError("Could not load Google signing keys")

            self._keys = {k.key_id: k for k in jwk_set.keys if k.key_id}
            self._fetched_at = time.monotonic()
            logger.debug("google.jwks_refreshed", key_count=len(self._keys))

    async def _fetch_jwks(self) -> dict:
        if self._http is not None:
            resp = await self._http.get(self.certs_url)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.get(self.certs_url)
        resp.raise_for_status()
        return resp.json()
