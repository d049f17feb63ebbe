"""
Create (or reset) an admin dashboard user.

Usage:
    python scripts/create_admin.py admin@dolobuilds.com --role admin
The password is read from the terminal.
"""
import argparse
import asyncio
import getpass
import logging

from dolo.database import _get_session_factory
from dolo.services.admin_users import ROLES, create_admin_user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def run(email: str, role: str) -> None:
    password = getpass.getpass(f"Password for {email}: ")
    async with _get_session_factory()() as db:
        admin = await create_admin_user(db, email, password, role)
        await db.commit()
        logger.info("Admin %s ready (role=%s)", admin.email, admin.role)


def main():
    parser = argparse.ArgumentParser(description="Create or reset an admin dashboard user")
    parser.add_argument("email")
    parser.add_argument("--role", choices=ROLES, default="admin")
    args = parser.parse_args()
    asyncio.run(run(args.email, args.role))


if __name__ == "__main__":
    main()
