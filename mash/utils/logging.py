"""
Logging configuration for the application.

Core modules log through structlog (``logger.info("msg", key=value)``);
structlog is routed into the standard library so one handler and one level
govern everything. A small adapter offers the same call style on top of a
plain standard library logger for code that does not want structlog.
"""

import logging
import sys
from typing import Dict, Any, Optional

import structlog


def configure_logging(level: str = "WARNING") -> None:
    """Configure logging for the application.
    
    Logs go to stderr so they never mix with conversation output on stdout.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    
    logging.getLogger("mash").setLevel(numeric_level)
    
    # Set noisy libraries to WARNING unless debugging
    if level.upper() != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("uvicorn").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("watchdog").setLevel(logging.WARNING)


class StructuredLoggerAdapter:
    """Lightweight adapter to allow logger.info("msg", key=value) usage.

    Converts keyword arguments into a simple " key=value" suffix appended to the
    log message and forwards to the standard library logger.
    """

    def __init__(self, base_logger: logging.Logger) -> None:
        self._logger = base_logger

    @staticmethod
    def _merge_message(msg: str, kwargs: Dict[str, Any]) -> str:
        if not kwargs:
            return msg
        suffix_parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{msg} | " + " ".join(suffix_parts)

    def debug(self, msg: str, *args: Any, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.debug(self._merge_message(msg, kwargs), *args, extra=extra)

    def info(self, msg: str, *args: Any, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.info(self._merge_message(msg, kwargs), *args, extra=extra)

    def warning(self, msg: str, *args: Any, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.warning(self._merge_message(msg, kwargs), *args, extra=extra)

    def error(self, msg: str, *args: Any, exc_info: Optional[bool] = None, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.error(self._merge_message(msg, kwargs), *args, exc_info=exc_info, extra=extra)


def get_structured_logger(name: str) -> StructuredLoggerAdapter:
    """Get a structured logger adapter that supports key=value kwargs.

    Args:
        name: Logger name

    Returns:
        StructuredLoggerAdapter
    """
    return StructuredLoggerAdapter(logging.getLogger(name))
