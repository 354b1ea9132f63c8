from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from models.user import User
from core.logger import logger

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, external_id: str) -> User:
        result = await self.db.execute(select(User).filter(User.external_id == external_id))
        return result.scalar_one_or_none()

    async def get_or_create_user(self, external_id: str, **kwargs) -> tuple[User, bool]:
        user = await self.get_user(external_id)
        if user:
            # Fill in profile fields the identity provider supplied late
            needs_commit = False
            for key in ("name", "email"):
                if kwargs.get(key) and not getattr(user, key):
                    setattr(user, key, kwargs[key])
                    needs_commit = True
            if needs_commit:
                await self.db.commit()
            return user, False

        user = User(external_id=external_id, role="student", **kwargs)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent request registered the same student first
            await self.db.rollback()
            return await self.get_user(external_id), False

        await self.db.refresh(user)
        logger.info("New student registered", external_id=external_id, user_id=user.id)
        return user, True
