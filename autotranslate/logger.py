import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "app.log"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
RUN_LOG_FORMAT = '%(asctime)s %(message)s'

# Cache for log mode to avoid repeated environment/config reads
_log_mode_cache = None


def _get_log_mode() -> str:
    """Get log mode (off|info|debug), environment first, then cached config value."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    log_mode = os.environ.get('AUTOTRANSLATE_LOG_MODE', 'info').lower()
    if log_mode not in ('off', 'info', 'debug'):
        log_mode = 'info'
    _log_mode_cache = log_mode
    return log_mode


def _levels_for(log_mode: str):
    """Return (logger_level, console_level) for a log mode."""
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Off mode: a level higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _file_handler(path: Path, fmt: str) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def set_log_mode(log_mode: str) -> None:
    """
    Switch the log mode and update every logger created by get_logger().

    Called after the stored configuration is loaded, or when it is updated.
    """
    global _log_mode_cache
    _log_mode_cache = log_mode if log_mode in ('off', 'info', 'debug') else 'info'
    target_level, console_level = _levels_for(_log_mode_cache)

    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        if not logger_name.startswith('autotranslate') or logger_name.startswith('autotranslate.run.'):
            continue
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            continue
        logger.setLevel(target_level)

        has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        if _log_mode_cache != 'off' and not has_file_handler:
            logger.addHandler(_file_handler(LOG_FILE, LOG_FORMAT))
        elif _log_mode_cache == 'off' and has_file_handler:
            for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
                handler.close()
                logger.removeHandler(handler)

        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(console_level)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    log_mode = _get_log_mode()
    target_level, console_level = _levels_for(log_mode)

    # Prevent duplicate handlers if logger already configured
    if logger.handlers:
        logger.setLevel(target_level)
        return logger

    logger.setLevel(target_level)

    if log_mode != 'off':
        logger.addHandler(_file_handler(LOG_FILE, LOG_FORMAT))

        c_handler = logging.StreamHandler()
        c_handler.setLevel(console_level)
        c_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(c_handler)

    return logger


def get_run_logger(post_type: str, target_language: str, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Create the append-only log for one batch run.

    Every line is timestamped; the file is named after the run start time,
    the document type and the target language.

    Args:
        post_type: Document type being translated
        target_language: Target language code
        log_dir: Directory for the file (defaults to LOG_DIR)

    Returns:
        Logger writing only to the run log file
    """
    started = datetime.now().strftime('%Y%m%d-%H%M%S')
    path = (log_dir or LOG_DIR) / f"run-{started}-{post_type}-{target_language}.log"

    logger = logging.getLogger(f"autotranslate.run.{started}.{post_type}.{target_language}")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    if not logger.handlers:
        logger.addHandler(_file_handler(path, RUN_LOG_FORMAT))
    logger.log_path = path
    return logger


def close_run_logger(logger: logging.Logger) -> None:
    """Flush and detach the run log file handlers."""
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
