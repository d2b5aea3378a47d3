# chainsense/utils/db.py
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from chainsense.errors import StorageError
from chainsense.extensions import db


def commit_or_rollback(action: str) -> None:
    """Commit the session; rollback + log + StorageError on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        raise StorageError(f"{action} failed") from exc
