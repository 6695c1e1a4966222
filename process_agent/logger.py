import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s:%(filename)s:%(lineno)d] %(levelname)s: %(message)s"

# agent level names -> logging levels
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


def to_logging_level(log_level: str) -> int:
    """Map an agent log level name to a ``logging`` level, INFO if unknown."""
    return LOG_LEVELS.get(log_level.strip().lower(), logging.INFO)


def configure_logging(
    log_level: str,
    log_file: str | None = None,
    log_to_console: bool = True,
    use_rich: bool = False,
) -> None:
    """Configure logging with optional rich formatting and log file.

    Args:
        log_level: Agent log level (trace, debug, info, warn, error, critical, off)
        log_file: Path of the log file, if any
        log_to_console: Whether to log to the console as well
        use_rich: Whether to use rich colored console logging
    """
    handlers: list[logging.Handler] = []
    file_error: OSError | None = None
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            file_error = e
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handlers.append(file_handler)

    if log_to_console or not handlers:
        if use_rich:
            handler: logging.Handler = RichHandler(
                console=Console(),
                show_path=True,
                show_time=True,
                show_level=True,
                markup=False,
                rich_tracebacks=True,
            )
            handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(handler)

    logging.basicConfig(level=to_logging_level(log_level), handlers=handlers, force=True)
    if file_error is not None:
        logger.warning("Cannot open log file '%s', logging to console: %s", log_file, file_error)

    # silence libs logging
    # - urllib3 - we don't care about those debug posts
    logging.getLogger("urllib3").setLevel(logging.WARNING)
