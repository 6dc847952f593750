from sqlalchemy.exc import OperationalError

from app.errors import TransientError
from app.extensions import db


def commit(action):
    """Commit the session; a lost or timed-out connection becomes TransientError."""
    try:
        db.session.commit()
    except OperationalError as e:
        db.session.rollback()
        raise TransientError(
            f"Database unavailable while {action}", details=str(e.orig)
        )
