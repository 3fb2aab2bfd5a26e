"""Logging setup for the CrossOver overlay.

Logs live in a ``logs`` directory next to the preferences file, so a
``--preferences-path`` pointing somewhere else keeps its logs with it.
``CROSSOVER_LOG_DIR`` overrides the location.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["log_dir_for", "setup_logging"]

LOG_FILE_NAME = "crossover.log"
_PACKAGE_PREFIX = "crossover."
_QUIET_LOGGERS = ("asyncio", "qasync")
_active_path: Path | None = None


class _OverlayFormatter(logging.Formatter):
    """Drops the package prefix so records read ``sync.surface`` rather than ``crossover.sync.surface``."""

    def format(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(_PACKAGE_PREFIX):
            record.name = name[len(_PACKAGE_PREFIX) :]
        try:
            return super().format(record)
        finally:
            record.name = name


def log_dir_for(preferences_path: Path | None) -> Path:
    override = os.environ.get("CROSSOVER_LOG_DIR")
    if override:
        return Path(override).expanduser()
    if preferences_path is None:
        return Path.home() / ".crossover" / "logs"
    return preferences_path.expanduser().parent / "logs"


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Send records to a small rotating file in ``log_dir`` and to stderr.

    Calling it again is a no-op unless ``force`` is set; the path of the
    active log file is returned either way.
    """

    global _active_path
    if _active_path is not None and not force:
        return _active_path

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = _OverlayFormatter("%(asctime)s %(levelname)-7s [%(name)s] %(message)s", "%H:%M:%S")

    # At most three files of 256 KB
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=256_000, backupCount=2, encoding="utf-8"
    )
    handlers: list[logging.Handler] = [file_handler]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_path = log_path
    return log_path
