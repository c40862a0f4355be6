"""Identity service — local sign-up/login and Google sign-in.

Learn: Service layer separates business logic from HTTP routing.
Routes call services, services call the database and raise domain
errors (DuplicateEmail, InvalidCredentials, InvalidAssertion).

Two invariants worth calling out:
- login() fails with the SAME error for an unknown email, a wrong
  password, and an account that has no local password at all, so the
  response can't be used to probe which emails are registered.
- google_login() never touches the users table until the ID token has
  been fully verified.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.google import GoogleClaims, GoogleTokenError, GoogleTokenVerifier
from inkwell.auth.password import hash_password, verify_password
from inkwell.db.models import User
from inkwell.errors import (
    DuplicateEmail,
    InvalidAssertion,
    InvalidCredentials,
    Unexpected,
)

logger = structlog.get_logger()


class IdentityService:
    """Resolves credentials and Google assertions to users."""

    def __init__(
        self,
        db: AsyncSession,
        bcrypt_rounds: int = 12,
        google: GoogleTokenVerifier | None = None,
    ):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds
        self.google = google

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_by_google_id(self, google_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.google_id == google_id))
        return result.scalars().first()

    # ─── Local accounts ─────────────────────────────────

    async def signup(self, name: str, email: str, password: str) -> User:
        """Create a local account. Raises DuplicateEmail."""
        if await self.get_by_email(email):
            raise DuplicateEmail()

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent sign-up for the same email
            await self.db.rollback()
            raise DuplicateEmail()

        logger.info("auth.signup", user_id=user.id)
        return user

    async def login(self, email: str, password: str) -> User:
        """Check email/password. Raises InvalidCredentials."""
        user = await self.get_by_email(email)

        if user is None or not user.has_local_password:
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        logger.info("auth.login", user_id=user.id)
        return user

    # ─── Google ─────────────────────────────────────────

    async def google_login(self, id_token: str) -> User:
        """Sign in with a Google ID token, creating the user if needed.

        The account already holding this Google subject wins, even if the
        email on the Google side has changed since. Otherwise an account
        with the same email is reused, and gets the Google id attached if
        it didn't have one. Raises InvalidAssertion.
        """
        if self.google is None:
            raise InvalidAssertion("Google sign-in is not configured")

        try:
            claims = await self.google.verify(id_token)
        except GoogleTokenError as e:
            logger.info("auth.google_rejected", reason=str(e))
            raise InvalidAssertion()

        user = await self.get_by_google_id(claims.sub)
        if user is not None:
            logger.info("auth.google_login", user_id=user.id)
            return user

        user = await self.get_by_email(claims.email)
        if user is not None:
            if not user.google_id:
                user.google_id = claims.sub
                try:
                    await self.db.commit()
                except IntegrityError:
                    # Another request linked this subject first
                    await self.db.rollback()
                    return await self._existing_google_user(claims)
                logger.info("auth.google_linked", user_id=user.id)
            logger.info("auth.google_login", user_id=user.id)
            return user

        user = User(
            name=claims.name or claims.email.split("@", 1)[0],
            email=claims.email,
            google_id=claims.sub,
            avatar_url=claims.picture,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return await self._existing_google_user(claims)

        logger.info("auth.google_signup", user_id=user.id)
        return user

    async def _existing_google_user(self, claims: GoogleClaims) -> User:
        """Re-resolve after losing a race on the unique email/google_id."""
        user = await self.get_by_google_id(claims.sub)
        if user is None:
            user = await self.get_by_email(claims.email)
        if user is None:
            raise Unexpected()
        return user
