# chainsense/cli.py
from __future__ import annotations

import click
from flask import Flask

from chainsense.extensions import db
from chainsense.models import User
from chainsense.utils.db import commit_or_rollback
from chainsense.utils.passwords import hash_password, validate_password


def _username_from_email(email: str) -> str:
    return email.split("@", 1)[0] or email


def register_cli(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.option("--email", required=True, help="Login email for the admin account.")
    @click.option("--password", required=True, help="Plain password; hashed before storing.")
    @click.option("--name", default="Chain Sense Admin", show_default=True, help="Display name.")
    def create_admin(email: str, password: str, name: str):
        """Create an admin user, or reset the password/role of an existing one."""
        email = email.strip().lower()

        ok, msg = validate_password(password)
        if not ok:
            raise click.BadParameter(msg, param_hint="--password")

        user = User.query.filter(db.func.lower(User.email) == email).first()
        created = user is None
        if created:
            user = User(email=email, username=_username_from_email(email))
            db.session.add(user)

        user.full_name = name
        user.role = "admin"
        user.is_active = True
        user.password_hash = hash_password(password)

        commit_or_rollback("Create admin")
        click.echo(f"{'Created' if created else 'Updated'} admin: {email}")
