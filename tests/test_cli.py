import pytest
from click.testing import CliRunner
from sqlmodel import select

from tasktracker.cli import create_admin
from tasktracker.database import dispose_engine, get_session, init_engine
from tasktracker.models import Account, User
from tasktracker.services.auth import verify_password


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


def run(*args):
    return CliRunner().invoke(create_admin, list(args))


def test_creates_admin_user(database_url):
    result = run("--email", "Root@Example.com", "--password", "supersecret", "--name", "Root")

    assert result.exit_code == 0, result.output
    assert "Admin user created successfully!" in result.output
    assert "Role: admin" in result.output

    init_engine(database_url)
    try:
        with get_session() as db:
            user = db.exec(select(User).where(User.email == "root@example.com")).one()
            account = db.exec(select(Account).where(Account.user_id == user.id)).one()
            assert user.role == "admin"
            assert verify_password("supersecret", account.password)
    finally:
        dispose_engine()


def test_duplicate_email_fails(database_url):
    run("--email", "root@example.com", "--password", "supersecret", "--name", "Root")

    result = run("--email", "root@example.com", "--password", "supersecret", "--name", "Root")

    assert result.exit_code == 1
    assert "User already exists" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ("--email", "not-an-email", "--password", "supersecret", "--name", "Root"),
        ("--email", "root@example.com", "--password", "short", "--name", "Root"),
    ],
)
def test_invalid_input_fails(database_url, args):
    result = run(*args)

    assert result.exit_code == 1
    assert "Error" in result.output


def test_missing_option_is_usage_error(database_url):
    result = run("--email", "root@example.com")

    assert result.exit_code == 2
