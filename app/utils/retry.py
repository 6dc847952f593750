import time

from flask import current_app

from app.errors import TransientError


def retry_transient(func, *args, **kwargs):
    """
    Call ``func`` and retry it once if it raises ``TransientError``.

    The second failure propagates to the caller unchanged.
    """
    try:
        return func(*args, **kwargs)
    except TransientError as e:
        backoff = current_app.config.get("RETRY_BACKOFF_SECONDS", 0.5)
        current_app.logger.warning(
            f"Transient failure in {getattr(func, '__name__', func)}: {e.message}; "
            f"retrying in {backoff}s"
        )
        time.sleep(backoff)
        return func(*args, **kwargs)
