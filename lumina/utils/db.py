# lumina/utils/db.py
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import StorageError


def commit(action: str):
    """Commit the session; on failure roll back and raise StorageError("Failed to <action>")."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("commit failed while trying to %s", action)
        raise StorageError(f"Failed to {action}")
