"""
Seed script to create the tables and the first admin account.

Run once with env set:
  ADMIN_EMAIL=admin@sekolah.sch.id
  ADMIN_PASSWORD=YourSecurePassword

  python -m sims.db.seed_admin

Creates:
- every table known to the models (users, profiles, user_roles, kelas, guru, siswa, orang_tua)
- users/profiles: the admin account (password updated if it already exists)
- user_roles: role "admin" for that account
"""
import asyncio
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sims.auth.models import Profile, User, UserRole
from sims.auth.security import hash_password
from sims.core.config import settings
from sims.core.enums import AppRole
from sims.db.session import AsyncSessionLocal, Base, engine

import sims.core.models  # noqa: F401  (register tables on Base.metadata)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_admin(db: AsyncSession) -> None:
    email = (settings.admin_email or "").strip().lower()
    password = settings.admin_password
    if not email or not password:
        print("No ADMIN_EMAIL/ADMIN_PASSWORD; skipping admin user.")
        return

    # 1. Create or update the admin account
    result = await db.execute(select(User).where(func.lower(User.email) == email))
    admin = result.scalar_one_or_none()
    if not admin:
        admin = User(
            email=email,
            password_hash=hash_password(password),
            user_metadata={"nama": settings.admin_name},
            email_confirmed_at=datetime.now(timezone.utc),
        )
        db.add(admin)
        await db.flush()
        db.add(Profile(id=admin.id, email=email, nama=settings.admin_name))
        print("Created admin user:", email)
    else:
        admin.password_hash = hash_password(password)
        print("Updated password of existing user:", email)

    # 2. Ensure the role assignment says admin
    role_result = await db.execute(select(UserRole).where(UserRole.user_id == admin.id))
    assignment = role_result.scalar_one_or_none()
    if assignment is None:
        db.add(UserRole(user_id=admin.id, role=AppRole.ADMIN.value))
        print("Assigned role admin.")
    elif assignment.role != AppRole.ADMIN.value:
        print(f"Changed role {assignment.role} -> admin.")
        assignment.role = AppRole.ADMIN.value

    await db.commit()
    print("Admin seed done.")


async def main() -> None:
    if engine is None:
        print("DATABASE_URL is not set; nothing to seed.")
        return
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
