"""User profile persistence.

``ProfileStore`` is what the API uses to look up and save the profile plan
generation personalises against; ``SqlProfileStore`` keeps it in the
``users`` table.
"""

import abc
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthplan.core.errors import NotFoundError, PersistenceError
from healthplan.logging_config import get_logger
from healthplan.models.user import User
from healthplan.schemas.user_profile import UserProfile

logger = get_logger(__name__)


async def get_user_profile(db: AsyncSession, user_id: uuid.UUID) -> UserProfile:
    """Load the profile plan generation personalises against.

    Raises:
        NotFoundError: No user with ``user_id``.
        PersistenceError: The lookup failed.
    """
    try:
        result = await db.execute(select(User).where(User.id == user_id))
    except SQLAlchemyError as e:
        logger.error("User profile lookup failed", user_id=str(user_id), error=str(e))
        raise PersistenceError("User profile lookup failed") from e

    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User profile", user_id)

    return UserProfile.model_validate(user)


async def save_user_profile(db: AsyncSession, profile: UserProfile) -> bool:
    """Create or replace the profile stored under ``profile.id``.

    Returns:
        True if the profile was created, False if it replaced one.

    Raises:
        PersistenceError: The write failed.
    """
    fields = profile.model_dump(mode="json", exclude={"id"})
    try:
        user = await db.get(User, profile.id)
        created = user is None
        if created:
            user = User(id=profile.id)
            db.add(user)
        for name, value in fields.items():
            setattr(user, name, value)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("User profile save failed", user_id=str(profile.id), error=str(e))
        raise PersistenceError("User profile save failed") from e

    logger.info(
        "User profile created" if created else "User profile updated",
        user_id=str(profile.id),
    )
    return created


class ProfileStore(abc.ABC):
    """Persistence interface for user profiles."""

    @abc.abstractmethod
    async def get(self, user_id: uuid.UUID) -> UserProfile:
        """Raises NotFoundError for an unknown user."""

    @abc.abstractmethod
    async def save(self, profile: UserProfile) -> bool:
        """Create or replace a profile; True if it was created."""


class SqlProfileStore(ProfileStore):
    """ProfileStore backed by the ``users`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, user_id: uuid.UUID) -> UserProfile:
        return await get_user_profile(self._db, user_id)

    async def save(self, profile: UserProfile) -> bool:
        return await save_user_profile(self._db, profile)
