import logging
import os
from typing import Optional


def _configure():
    level_name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Route uvicorn logs through root with the same formatter.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
        lg.setLevel(level)

    # httpx logs every request at INFO; asset fetches would flood the log.
    http_level_name = (os.getenv("HTTP_LOG_LEVEL") or "WARNING").strip().upper()
    http_level = getattr(logging, http_level_name, logging.WARNING)
    for name in ("httpx", "httpcore"):
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
        lg.setLevel(http_level)


_configure()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "fitlocker-og")


logger = get_logger()
