"""
Bootstrap the first super administrator.

Every administrator-management endpoint requires an existing super_admin, so
the first one is created here, directly against the database:

    sleepplanet-bootstrap --username root_admin --email root@sleepplanet.cn --password 'S3cure-pass'

Reference roles are seeded if missing. ``--create-tables`` creates the schema
from the ORM models (local development; production uses the migrations).
"""
import argparse
import getpass
import sys
from typing import List, Optional

from pydantic import ValidationError

from sleepplanet.config import Settings
from sleepplanet.database import Base, build_engine, build_session_factory
from sleepplanet.errors import AppError
from sleepplanet.models.role import DEFAULT_ROLES, SUPER_ADMIN
from sleepplanet.schemas.admin_user import AdminUserCreate
from sleepplanet.services.account_store import AccountStore, UniqueColumn
from sleepplanet.utils.logger import logger, setup_logging
from sleepplanet.utils.passwords import PasswordHasher


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the initial super_admin account")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument("--phone-number", default=None)
    parser.add_argument("--create-tables", action="store_true", help="Create tables from the ORM models first")
    return parser.parse_args(argv)


def bootstrap_super_admin(
    settings: Settings,
    username: str,
    email: str,
    password: str,
    phone_number: Optional[str] = None,
    create_tables: bool = False,
) -> int:
    """Seed reference roles and create a super_admin account; return its id.

    The credentials must satisfy the same rules as ``POST /sys/admins`` so the
    account can log in afterwards.

    Raises:
        pydantic.ValidationError: username, password, email or phone number is invalid.
    """
    data = AdminUserCreate(
        username=username,
        password=password,
        email=email,
        phone_number=phone_number,
        role_names=[SUPER_ADMIN],
    )

    engine = build_engine(settings)
    if create_tables:
        Base.metadata.create_all(bind=engine)

    hasher = PasswordHasher.from_settings(settings)
    session = build_session_factory(engine)()
    try:
        store = AccountStore(session)
        with store.transaction("seed roles"):
            added = store.ensure_roles(DEFAULT_ROLES)
        if added:
            logger.info(f"Seeded roles: {', '.join(added)}", extra={"action": "bootstrap"})

        password_hash = hasher.hash(data.password)
        with store.transaction("bootstrap super_admin"):
            store.check_unique(UniqueColumn.USERNAME, data.username)
            store.check_unique(UniqueColumn.EMAIL, data.email)
            if data.phone_number:
                store.check_unique(UniqueColumn.PHONE, data.phone_number)
            admin_id = store.create_administrator(data.username, data.email, password_hash, data.phone_number)
            store.assign_role(admin_id, store.role_id_by_name(SUPER_ADMIN))
    finally:
        session.close()
        engine.dispose()

    logger.info(f"Created super_admin: {admin_id}", extra={"username": username, "action": "bootstrap"})
    return admin_id


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    setup_logging(settings.LOG_LEVEL)

    password = args.password or getpass.getpass("Password: ")
    try:
        admin_id = bootstrap_super_admin(
            settings,
            username=args.username,
            email=args.email,
            password=password,
            phone_number=args.phone_number,
            create_tables=args.create_tables,
        )
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"Bootstrap failed: {field}: {error['msg']}", file=sys.stderr)
        return 1
    except AppError as exc:
        print(f"Bootstrap failed: {exc.message}", file=sys.stderr)
        return 1

    print(f"Created super_admin {args.username} (id={admin_id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
