# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/fieldops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--email admin@fieldops.local] [--password "Password123!"]
#   Create tables and the default Admin account. Idempotent.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role "Marketing Staff"]
#   List users with role, active and lock state.
# - python -m flask users create --name "Asha" --email asha@fieldops.local --password "Password123!" --role "Marketing Staff"
#   Create a user (prompts if options are omitted).
# - python -m flask users unlock asha@fieldops.local
#   Clear failed-login lockout for one account.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLES
from .services import auth_service
from .services.auth_service import AuthError, PasswordValidationError
from .validation import ValidationError


@click.group("system")
def system_group():
    """System bootstrap and repair commands."""


@system_group.command("init")
@click.option("--name", default="Administrator", help="Admin display name")
@click.option("--email", default="admin@fieldops.local", help="Admin email")
@click.option("--password", default="Password123!", help="Admin password")
@with_appcontext
def init_system(name, email, password):
    """
    Create all tables and the default Admin account.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing field operations backend...")
    db.create_all()
    click.echo("PASS Tables created")

    existing = auth_service.get_user_by_email(email.strip().lower())
    if existing:
        click.echo(f"PASS Using existing admin: {existing.email} (ID: {existing.id})")
        return

    try:
        user = auth_service.create_user(name=name, email=email, password=password, role="Admin")
    except (AuthError, ValidationError) as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    db.session.commit()
    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


@system_group.command("reset-db")
@click.option("--yes", is_flag=True, help="Confirm dropping every table")
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group("users")
def users_group():
    """User inspection and bootstrap."""


@users_group.command("list")
@click.option("--role", type=click.Choice(ROLES), default=None)
@with_appcontext
def list_users(role):
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    users = query.order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        flags = []
        if not user.active:
            flags.append("inactive")
        if user.account_locked:
            flags.append("locked")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<18} {user.name}{suffix}")


@users_group.command("create")
@click.option("--name", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--role", type=click.Choice(ROLES), default="Marketing Staff", show_default=True)
@with_appcontext
def create_user_command(name, email, password, role):
    try:
        user = auth_service.create_user(
            name=name,
            email=email,
            password=password,
            role=role,
            is_sub_admin=role == "Sub Admin",
        )
    except PasswordValidationError as e:
        db.session.rollback()
        raise click.ClickException(f"Weak password: {e}")
    except (AuthError, ValidationError) as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    db.session.commit()
    click.echo(f"PASS Created {user.role}: {user.email} (ID: {user.id})")


@users_group.command("unlock")
@click.argument("email")
@with_appcontext
def unlock_user_command(email):
    user = auth_service.get_user_by_email(email.strip().lower())
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    auth_service.unlock_user(user)
    db.session.commit()
    click.echo(f"PASS Unlocked {user.email}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
