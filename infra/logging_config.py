from __future__ import annotations

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from infra.app_paths import resource_path

LOG_PATH = resource_path("capture_tool.log", prefer_write=True)
LOGGER_NAME = "CaptureTool"


def configure_logging(
    log_path: Path = LOG_PATH,
    debug: bool = False,
) -> tuple[logging.Logger, Optional[RotatingFileHandler]]:
    """Configure application logging in a centralized, idempotent way.

    Every component logs under the ``CaptureTool`` hierarchy, so the handlers
    are attached once to that logger.  Returns (logger, file_handler).
    """
    app_logger = logging.getLogger(LOGGER_NAME)
    file_h: Optional[RotatingFileHandler] = None
    if not app_logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )
        try:
            file_h = RotatingFileHandler(
                str(log_path),
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError:
            # read-only install location; console logging still works
            file_h = None
        if file_h is not None:
            file_h.setFormatter(formatter)
            app_logger.addHandler(file_h)

        console = logging.StreamHandler()
        console.setLevel(logging.WARNING)
        console.setFormatter(formatter)
        app_logger.addHandler(console)
    else:
        for handler in app_logger.handlers:
            if isinstance(handler, RotatingFileHandler):
                file_h = handler

    app_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if debug:
        for handler in app_logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(logging.DEBUG)
    return app_logger, file_h


logger: logging.Logger = logging.getLogger(LOGGER_NAME)
file_handler: Optional[RotatingFileHandler] = None


def initialize_app_environment(log_path: Path = LOG_PATH, debug: bool = False) -> None:
    """Initialize environment and logging for application entry points.

    Safe to call multiple times (idempotent).
    """
    os.environ.setdefault("QT_API", "PySide6")
    os.environ.setdefault("PYQTGRAPH_QT_LIB", "PySide6")

    global logger, file_handler
    logger, file_handler = configure_logging(log_path, debug=debug)
