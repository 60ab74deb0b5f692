# Process-wide logging for evotune, configured once and shared by every module

import logging
import os
import sys
from datetime import datetime
from typing import Optional

_logger_configured = False
_log_file_path: Optional[str] = None

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - %(name)s.%(funcName)s:%(lineno)d - %(message)s'


def setup_logging(
    base_name: str = "evotune",
    level: Optional[int] = None,
    log_dir: Optional[str] = None,
) -> Optional[str]:
    """
    Set up the global logging configuration. Should be called once at application startup.

    When no directory is given, ``EVOTUNE_LOG_DIR`` is consulted; without either,
    records go to stderr. The level falls back to ``EVOTUNE_LOG_LEVEL`` and then WARNING.

    Returns:
        The log file path, or None when logging to stderr.
    """
    global _logger_configured, _log_file_path

    if _logger_configured:
        return _log_file_path

    if level is None:
        level_name = os.environ.get("EVOTUNE_LOG_LEVEL", "WARNING").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.WARNING

    log_dir = log_dir or os.environ.get("EVOTUNE_LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        _log_file_path = os.path.join(log_dir, f"{base_name}_{timestamp}.log")
        handler: logging.Handler = logging.FileHandler(_log_file_path)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    _logger_configured = True
    return _log_file_path


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance. Automatically sets up logging if not already configured.

    Args:
        name: Logger name. If None, uses the calling module's name.
    """
    if not _logger_configured:
        setup_logging()

    if name is None:
        import inspect
        frame = inspect.currentframe().f_back
        name = frame.f_globals.get('__name__', 'unknown')

    return logging.getLogger(name)
