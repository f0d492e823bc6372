"""TagTrack IMS — Logging setup."""
import logging

from tagtrack.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s — %(message)s"


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once and align uvicorn loggers to the same level."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    # avoid duplicate handlers on reload
    if not any(getattr(h, "_tagtrack", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tagtrack = True
        root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        logging.getLogger(name).setLevel(level)
