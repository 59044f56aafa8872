"""
Identity Resolver: principal → internal user.

resolve() is read-only and fails closed with UserNotFound; creating the row
is the separate, idempotent provision() step (called by POST /users/sync).
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.errors import UserNotFound
from photofeed.models import User

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, principal: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.external_principal_id == principal)
        )
        return result.scalar_one_or_none()

    async def resolve(self, principal: str) -> User:
        user = await self.find(principal)
        if user is None:
            raise UserNotFound("No user is provisioned for this account")
        return user

    async def provision(self, principal: str, display_name: str) -> tuple[User, bool]:
        """
        Create the user for `principal` on first call.

        Returns (user, created). Subsequent calls return the existing row and
        refresh display_name if it changed.
        """
        user = await self.find(principal)
        if user is not None:
            if display_name and user.display_name != display_name:
                user.display_name = display_name
                await self.db.commit()
            return user, False

        user = User(external_principal_id=principal, display_name=display_name)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request provisioned the same principal first
            await self.db.rollback()
            return await self.resolve(principal), False

        logger.info("Provisioned user %s for principal %s", user.id, principal)
        return user, True
