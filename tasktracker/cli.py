import sys

import click
from pydantic import ValidationError

from .config import get_settings
from .database import create_tables, dispose_engine, get_session, init_engine
from .errors import AuthError
from .models import ROLE_ADMIN
from .schemas.user import CreateUser
from .schemas.validation import Invalid, validate
from .services.admin import AdminService
from .services.auth import AuthService


def error_exit(message: str) -> None:
    click.echo(click.style(f"✗ Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.command(name="create-admin", context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("--email", required=True, help="E-mail address of the new administrator.")
@click.option("--password", required=True, help="Initial password (8-128 characters).")
@click.option("--name", required=True, help="Display name.")
def create_admin(email: str, password: str, name: str):
    """Create a user with the admin role."""
    result = validate(CreateUser, {"email": email, "password": password, "name": name, "role": ROLE_ADMIN})
    if isinstance(result, Invalid):
        error_exit("; ".join(f"{error['field']}: {error['message']}" for error in result.errors))
    payload = result.value

    try:
        settings = get_settings()
    except ValidationError as exc:
        error_exit(f"invalid configuration: {exc.error_count()} problem(s)\n{exc}")

    click.echo("Creating admin user...")
    click.echo(f"Email: {email}")
    click.echo(f"Name: {name}")

    init_engine(settings.database_url)
    try:
        create_tables()
        with get_session() as session:
            admin = AdminService(session, AuthService(session, settings))
            user = admin.create_user(
                email=payload.email, password=payload.password, name=payload.name, role=payload.role
            )
    except AuthError as exc:
        error_exit(exc.message)
    finally:
        dispose_engine()

    click.echo(click.style("✓ Admin user created successfully!", fg="green"))
    click.echo(f"  User ID: {user.id}")
    click.echo(f"  Email: {user.email}")
    click.echo(f"  Name: {user.name}")
    click.echo(f"  Role: {user.role}")


def main():
    create_admin()


if __name__ == "__main__":
    main()
