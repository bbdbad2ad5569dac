"""Logging setup for the OmniDev backend.

Loggers are plain stdlib loggers under the "omnidev" namespace. The helpers
below keep the format of recurring events consistent so they can be grepped.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Configure the root "omnidev" logger once per process."""
    root = logging.getLogger("omnidev")
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger, e.g. get_logger("omnidev.ai")."""
    return logging.getLogger(name)


_auth_logger = get_logger("omnidev.auth")
_ai_logger = get_logger("omnidev.ai")


def log_auth_event(event: str, user_id: str | None, success: bool, detail: str | None = None) -> None:
    """Log an authentication or authorization decision."""
    if success:
        _auth_logger.info(f"AUTH {event} user={user_id} ok")
    else:
        _auth_logger.warning(f"AUTH {event} user={user_id} failed: {detail or 'unknown'}")


def log_ai_request(
    task: str,
    user_id: str | None,
    model: str | None,
    success: bool,
    detail: str | None = None,
) -> None:
    """Log the outcome of one AI task request."""
    if success:
        _ai_logger.info(f"AI {task} user={user_id} model={model} ok")
    else:
        _ai_logger.warning(f"AI {task} user={user_id} failed: {detail or 'unknown'}")
