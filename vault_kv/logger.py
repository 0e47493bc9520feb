import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

# Chatty libraries held at WARNING unless we are debugging
NOISY_LOGGERS = ("urllib3", "requests")


def _file_handler(filename: str) -> logging.Handler:
    log_path = Path(filename)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a", encoding="utf-8")


def setup_logging(config: LogConfig) -> None:
    """
    Route vault-kv logging to a file and/or stderr.

    Args:
        config: LogConfig object containing settings.

    Note:
        - Handlers installed by an earlier call are closed and replaced.
        - The log file is appended to; missing parent directories are created.
        - Unknown level names fall back to INFO.
        - The thread name is part of every line because searches run on
          worker threads.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for old in list(root_logger.handlers):
        root_logger.removeHandler(old)
        old.close()
    root_logger.setLevel(level)

    handlers: list[logging.Handler] = []
    if config.file:
        handlers.append(_file_handler(config.file))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
