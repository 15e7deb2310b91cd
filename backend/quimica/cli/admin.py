"""CLI for database migrations and account maintenance."""
import argparse
import getpass
from pathlib import Path

from alembic import command
from alembic.config import Config

from quimica.core.database import get_session_local
from quimica.core.logging_config import LoggingConfig
from quimica.models.user import User, UserRole
from quimica.services.auth_service import (AuthService, normalize_email,
                                           validate_password)

logger = LoggingConfig.get_logger(__name__)

BACKEND_DIR = Path(__file__).resolve().parents[2]


def _alembic_config() -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return config


def cmd_migrate(args):
    """Upgrade the database to the given revision (head by default)."""
    command.upgrade(_alembic_config(), args.revision)
    return 0


def cmd_stamp(args):
    """Mark the database as being at a revision without running migrations."""
    command.stamp(_alembic_config(), args.revision)
    return 0


def cmd_create_admin(args):
    """Create an admin account, or promote an existing user to admin."""
    password = args.password or getpass.getpass("Password: ")
    db = get_session_local()()
    try:
        email = normalize_email(args.email)
        user = db.query(User).filter(User.email == email).first()
        auth = AuthService(db)
        validate_password(password, password)
        if user:
            user.role = UserRole.ADMIN.value
            user.is_active = True
            user.is_verified = True
            auth.set_password(user, password)
            logger.info(f"Promoted {email} to admin")
            print(f"User {email} is now an admin")
            return 0

        user = auth.register_user(
            email=email,
            password=password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=UserRole.ADMIN.value,
            is_verified=True,
        )
        print(f"Created admin {user.email} ({user.id})")
        return 0
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()


def cmd_cleanup_sessions(args):
    """Delete expired login sessions."""
    db = get_session_local()()
    try:
        count = AuthService(db).cleanup_expired_sessions()
    finally:
        db.close()
    print(f"Removed {count} expired sessions")
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="quimica-admin")
    sub = p.add_subparsers(dest="cmd")
    s = sub.add_parser("migrate", help="Run migrations (upgrade head)")
    s.add_argument("--revision", "-r", help="Target revision", default="head")
    s.set_defaults(func=cmd_migrate)
    s = sub.add_parser("stamp", help="Stamp alembic to a revision")
    s.add_argument("--revision", "-r", help="Revision to stamp", default="head")
    s.set_defaults(func=cmd_stamp)
    s = sub.add_parser("create-admin", help="Create or promote an admin account")
    s.add_argument("--email", required=True)
    s.add_argument("--password", help="Prompted for when omitted")
    s.add_argument("--first-name", default="Admin")
    s.add_argument("--last-name", default="")
    s.set_defaults(func=cmd_create_admin)
    s = sub.add_parser("cleanup-sessions", help="Delete expired sessions")
    s.set_defaults(func=cmd_cleanup_sessions)
    return p


def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    if not hasattr(args, "func"):
        p.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
