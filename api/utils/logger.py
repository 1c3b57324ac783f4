"""
Logging setup.

Every module gets its logger through `get_logger(__name__)`.
`configure_logging` is called once from the application lifespan.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_ROOT_NAME = "api"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the application logger tree."""
    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(level.upper())

    if not any(getattr(h, "_stockavoo", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stockavoo = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # Quiet the SQL echo unless explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the application logger tree."""
    if name == "__main__" or name == "main":
        name = f"{_ROOT_NAME}.main"
    elif not name.startswith(_ROOT_NAME):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)


logger = get_logger("api")
