"""
Admin user management - bootstrap accounts for the admin dashboard.
"""
import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.models.admin_user import AdminUser

logger = logging.getLogger(__name__)

ROLES = ("admin", "editor", "viewer")


async def create_admin_user(
    db: AsyncSession,
    email: str,
    password: str,
    role: str = "admin",
) -> AdminUser:
    """
    Create an admin user, or reset the password/role of an existing one.
    Raises ValueError for an unknown role or a password under 8 characters.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")

    email = email.strip().lower()
    password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    result = await db.execute(select(AdminUser).where(AdminUser.email == email))
    admin = result.scalar_one_or_none()
    if admin:
        admin.password_hash = password_hash
        admin.role = role
        admin.is_active = True
        logger.info("Admin user updated: %s role=%s", email, role)
    else:
        admin = AdminUser(email=email, password_hash=password_hash, role=role, is_active=True)
        db.add(admin)
        logger.info("Admin user created: %s role=%s", email, role)

    await db.flush()
    return admin
