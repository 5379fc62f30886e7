import inspect
import logging
import sys
from pathlib import Path

from loguru import logger

from core.config import settings

CONSOLE_FORMAT = (
    "<cyan>[{extra[component]}]</cyan> | <level>{level: <8}</level> | "
    "<green>{time:DD.MM.YYYY HH:mm:ss.SSS}</green> | "
    "<blue>{name}</blue>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | [{extra[component]}] | {level: <8} | "
    "{name}:{function}:{line} | {message}"
)


class InterceptHandler(logging.Handler):
    """Route records of stdlib loggers (uvicorn, asyncio) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logger(component: str = "api"):
    """
    Setup component-specific logging.

    Console output is always enabled; the info and error files are written
    to LOGGING.LOG_DIR when LOGGING.LOG_TO_FILE is set.

    Args:
        component: Name of the component (e.g., 'api', 'device')
    """
    logger.remove()

    # Console output, errors go to stderr with their traceback
    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=settings.LOGGING.LOG_STD_LEVEL,
        filter=lambda record: record["level"].no < logging.ERROR,
        colorize=True,
    )
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT + "\n{exception}",
        level="ERROR",
        colorize=True,
        backtrace=True,
        diagnose=settings.DEBUG,
    )

    if settings.LOGGING.LOG_TO_FILE:
        log_dir = Path(settings.LOGGING.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / f"{component}_info.log",
            format=FILE_FORMAT,
            level="DEBUG",
            filter=lambda record: record["level"].no < logging.ERROR,
            rotation=settings.LOGGING.LOG_ROTATION,
            retention="7 days",
            compression="zip",
            enqueue=True,
            diagnose=False,
        )

        # Full diagnostics for errors
        logger.add(
            log_dir / f"{component}_error.log",
            format=FILE_FORMAT + "\n{exception}",
            level="ERROR",
            rotation=settings.LOGGING.LOG_ROTATION,
            retention="30 days",
            compression="zip",
            enqueue=True,
            diagnose=True,
            backtrace=True,
        )

    # uvicorn configures its own stdlib loggers, send them through loguru
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    # Bind component name to all log records
    logger.configure(extra={"component": component.upper()})

    logger.info(f"Logger initialized for component: {component.upper()}")

    return logger
