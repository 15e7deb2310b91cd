from datetime import datetime, timedelta

import pytest

from quimica.cli import admin
from quimica.models.user import Session as UserSession
from quimica.models.user import User


@pytest.fixture
def cli_db(db, monkeypatch):
    """Point the CLI at the test database"""
    monkeypatch.setattr(admin, "get_session_local", lambda: (lambda: db))
    return db


def test_build_parser_and_help():
    parser = admin.build_parser()
    parser.format_help()

    assert admin.main([]) == 2
    args = parser.parse_args(["migrate"])
    assert args.revision == "head"
    assert args.func is admin.cmd_migrate


def test_create_admin(cli_db, capsys):
    rc = admin.main(["create-admin", "--email", " Root@Example.com ", "--password", "s3cret-pass"])

    assert rc == 0
    user = cli_db.query(User).filter(User.email == "root@example.com").one()
    assert user.role == "admin"
    assert user.is_verified
    assert "Created admin root@example.com" in capsys.readouterr().out


def test_create_admin_promotes_existing_user(cli_db, student):
    email = student.email

    assert admin.main(["create-admin", "--email", email, "--password", "another-pass"]) == 0

    user = cli_db.query(User).filter(User.email == email).one()
    assert user.role == "admin"


def test_create_admin_rejects_short_password(cli_db, capsys):
    assert admin.main(["create-admin", "--email", "x@example.com", "--password", "abc"]) == 1
    assert "Password must be at least" in capsys.readouterr().out
    assert cli_db.query(User).count() == 0


def test_cleanup_sessions(cli_db, student, capsys):
    cli_db.add(UserSession(
        user_id=student.id,
        token="expired-token",
        expires_at=datetime.utcnow() - timedelta(hours=1),
    ))
    cli_db.commit()

    assert admin.main(["cleanup-sessions"]) == 0
    assert "Removed 1 expired sessions" in capsys.readouterr().out
