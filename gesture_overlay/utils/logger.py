"""
Logging setup: compact console output plus an optional rotating log file.

The gate and result buffer log at DEBUG for every frame. At 30 fps that
drowns the console, so those records go only to the log file unless
``per_frame_console`` is set.
"""

import os
import logging
import logging.handlers

PER_FRAME_LOGGERS = (
    "gesture_overlay.inference.gate",
    "gesture_overlay.inference.result_buffer",
    "gesture_overlay.core.pipeline",
)


class PerFrameFilter(logging.Filter):
    """Drops DEBUG records from the per-frame loggers."""

    def __init__(self, loggers=PER_FRAME_LOGGERS):
        super().__init__()
        self._loggers = tuple(loggers)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.DEBUG:
            return True
        return not any(record.name == name or record.name.startswith(name + ".")
                       for name in self._loggers)


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3,
                  per_frame_console=False):
    """Configure application logging.

    Args:
        level: root level name, e.g. "DEBUG"
        log_file: optional path for a rotating file that receives everything
        per_frame_console: also print per-frame DEBUG records on the console
    """
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-40s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    if not per_frame_console:
        console.addFilter(PerFrameFilter())
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger
