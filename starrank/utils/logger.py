import logging
from logging import FileHandler, Formatter, Logger
from pathlib import Path

from rich.logging import RichHandler

from ..constants import FRAMEWORK_NAME

LOGGER_NAME = FRAMEWORK_NAME.lower()

_LOG_FILE = "log.txt"
"""The name of the log file written in the run directory."""

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _same_file(handler: FileHandler, log_path: Path | None) -> bool:
    return log_path is not None and Path(handler.baseFilename) == log_path


def init_starrank_logger(
    log_dir: str | Path | None = None,
    mode: str = "a",
    level: int | str | None = None,
) -> Logger:
    """Configure the package logger.

    The console always gets one rich handler. With ``log_dir``, records are also
    written to ``<log_dir>/log.txt``; a file handler of any other run directory is
    closed and removed, so calling this again never duplicates output.

    :param log_dir: The run directory of the log file, or ``None`` for console only.
    :param mode: The mode the log file is opened with.
    :param level: The logger level; left unchanged when ``None``.
    :return: The ``starrank`` logger.
    """
    log_path = Path(log_dir, _LOG_FILE).resolve() if log_dir else None
    starrank_logger = logging.getLogger(LOGGER_NAME)
    if level is not None:
        starrank_logger.setLevel(level)

    rich_handlers = []
    file_handlers = []
    for handler in list(starrank_logger.handlers):
        if isinstance(handler, RichHandler):
            rich_handlers.append(handler)
        elif isinstance(handler, FileHandler) and _same_file(handler, log_path):
            file_handlers.append(handler)
        else:
            starrank_logger.removeHandler(handler)
            handler.close()

    if not rich_handlers:
        starrank_logger.addHandler(
            RichHandler(rich_tracebacks=True, tracebacks_show_locals=True)
        )

    if log_path is not None and not file_handlers:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = FileHandler(log_path, mode=mode)
        file_handler.setFormatter(Formatter(_FILE_FORMAT))
        starrank_logger.addHandler(file_handler)

    return starrank_logger


logger = init_starrank_logger()
"""The package logger shared by every StarRank module."""
