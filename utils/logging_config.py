import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that are too chatty at DEBUG/INFO
NOISY_LOGGERS = ('urllib3', 'httpx', 'httpcore', 'uvicorn.access')


def resolve_log_level(log_level=None):
    """
    Turn a level name into a logging level

    None reads LOG_LEVEL from config.py; unknown names map to INFO.
    """
    if log_level is None:
        try:
            from config import LOG_LEVEL as log_level
        except ImportError:
            log_level = 'INFO'

    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def _attach(root_logger, handler, level, formatter):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def setup_logging(log_file=None, log_level=None):
    """
    Configure the root logger for the monitor, the scripts and the API

    Args:
        log_file: Append log lines to this file as well (optional)
        log_level: Level name (optional, defaults to config.LOG_LEVEL or INFO)

    Returns:
        The root logger
    """
    level = resolve_log_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    _attach(root_logger, logging.StreamHandler(), level, formatter)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        # appended across restarts
        _attach(root_logger, logging.FileHandler(log_file, mode='a', encoding='utf-8'), level, formatter)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return root_logger


def get_logger(name):
    """
    Get a logger with the specified name

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
