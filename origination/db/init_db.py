import logging
from uuid import UUID

from sqlalchemy import select

from origination.core.permissions import RoleType
from origination.core.settings import settings
from origination.db.session import Database
from origination.models.role_assignment import RoleAssignment
from origination.models.user_profile import UserProfile

logger = logging.getLogger(__name__)


async def init_db(database: Database) -> None:
    """
    Seed the platform (SaaS) administrator when one is configured.
    """
    if not settings.seed_saas_admin_user_id or not settings.seed_saas_admin_email:
        return
    user_id = UUID(settings.seed_saas_admin_user_id)
    async with database.session() as session:
        profile = await session.get(UserProfile, user_id)
        if profile is None:
            logger.info("Creating SaaS admin profile")
            profile = UserProfile(
                id=user_id,
                email=settings.seed_saas_admin_email.lower(),
                is_onboarded=True,
            )
            session.add(profile)

        stmt = select(RoleAssignment).where(
            RoleAssignment.user_id == user_id,
            RoleAssignment.role == RoleType.SAAS_ADMIN.value,
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            session.add(RoleAssignment(user_id=user_id, role=RoleType.SAAS_ADMIN.value, bank_id=None))
            logger.info("SaaS admin role assigned")
        await session.commit()
