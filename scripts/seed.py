"""
Seed database script.

Creates a verified demo owner and one staff account per subordinate role,
all owned by that owner.

Run with: PYTHONPATH=. python scripts/seed.py
"""

import asyncio

from api.apps.auth.models import User, AuthProvider
from api.apps.auth.permissions import Role
from api.config.settings import settings
from api.db.database import async_session_factory, create_tables
from api.utils.logger import configure_logging, get_logger
from api.utils.security import CredentialHasher

logger = get_logger(__name__)

DEFAULT_PASSWORD = "Password123!"

OWNER = {
    "email": "owner@stockavoo.com",
    "full_name": "Demo Owner",
    "phone_number": "+2348000000000",
}

STAFF_TO_SEED = [
    {"email": "manager@stockavoo.com", "full_name": "Store Manager", "role": Role.MANAGER},
    {"email": "clerk@stockavoo.com", "full_name": "Sales Clerk", "role": Role.CLERK},
    {"email": "accountant@stockavoo.com", "full_name": "Company Accountant", "role": Role.ACCOUNTANT},
    {"email": "warehouse@stockavoo.com", "full_name": "Warehouse Lead", "role": Role.WAREHOUSE_MANAGER},
]


async def seed_users() -> None:
    configure_logging(settings.LOG_LEVEL)
    await create_tables()
    hasher = CredentialHasher(rounds=settings.BCRYPT_ROUNDS)
    hashed = hasher.hash_password(DEFAULT_PASSWORD)

    async with async_session_factory() as session:
        try:
            logger.info("Starting database seed process...")

            owner = await User.find_one(session, email=OWNER["email"])
            if owner is None:
                owner = User(
                    **OWNER,
                    hashed_password=hashed,
                    role=Role.OWNER,
                    is_active=True,
                    is_verified=True,
                    agreed_to_terms=True,
                    auth_provider=AuthProvider.LOCAL,
                )
                session.add(owner)
                await session.flush()
                logger.info(f"Created owner: {owner.email}")

            for staff in STAFF_TO_SEED:
                if await User.exists(session, email=staff["email"]):
                    logger.info(f"User {staff['email']} already exists. Skipping.")
                    continue

                logger.info(f"Creating {staff['role'].value}: {staff['email']}")
                session.add(User(
                    **staff,
                    phone_number=OWNER["phone_number"],
                    hashed_password=hashed,
                    created_by=owner.id,
                    is_active=True,
                    is_verified=True,  # Auto-verify seed users
                    agreed_to_terms=True,
                    auth_provider=AuthProvider.LOCAL,
                ))

            await session.commit()
            logger.info(f"Database seeded. All seed accounts use password {DEFAULT_PASSWORD!r}")

        except Exception as e:
            await session.rollback()
            logger.error(f"Failed to seed database: {e}")
            raise


if __name__ == "__main__":
    asyncio.run(seed_users())
