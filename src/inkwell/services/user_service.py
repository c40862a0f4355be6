"""User service — profile lookups."""

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import User
from inkwell.errors import NotFound


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> User:
        """Load a user. Raises NotFound.

        A session token can outlive its user (tokens are never revoked),
        so callers holding a valid token can still land here.
        """
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user
