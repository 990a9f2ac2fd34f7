"""
Create a verified local user and an organization they own, for local testing.

    python -m app.scripts.create_local_owner --email me@acme.dev --password S3cretpass --org "Acme"
"""

import argparse
import asyncio
from typing import Optional

import structlog
from sqlmodel import select

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import get_session_context, init_db
from app.core.logging import configure_logging
from app.models.organization import Organization
from app.models.user import User
from app.services import organizations as org_service

log = structlog.get_logger()


async def create_owner(
    email: str, password: str, org_name: Optional[str] = None, *, create_tables: bool = False
) -> tuple[User, Optional[Organization]]:
    if create_tables:
        await init_db()

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                email=email,
                name=email.split("@")[0],
                password_hash=hash_password(password),
                email_verified=True,
            )
            session.add(user)
            await session.flush()
            log.info("script.user_created", email=email)
        else:
            log.info("script.user_exists", email=email)

        org = None
        if org_name:
            result = await session.execute(
                select(Organization).where(
                    Organization.owner_id == user.id, Organization.name == org_name
                )
            )
            org = result.scalar_one_or_none()
            if not org:
                org = await org_service.create_org(session, org_name, user)
                log.info("script.org_created", slug=org.slug)
            else:
                log.info("script.org_exists", slug=org.slug)

    return user, org


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create a local owner account.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--org", default=None, help="Organization to create for the user")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create tables first (dev databases only)"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, "text")
    asyncio.run(create_owner(args.email, args.password, args.org, create_tables=args.create_tables))


if __name__ == "__main__":
    main()
