import logging

import structlog
from structlog.stdlib import add_log_level, add_logger_name


def level_from_name(name: str | int | None) -> int:
    """Translate a config value such as ``"debug"`` into a logging level."""
    if name is None:
        return logging.INFO
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def setup_logging(level: str | int = logging.INFO, colors: bool = True) -> None:
    """Configure structlog on top of stdlib logging.

    ``level`` may be a stdlib level number or a name from the config file.
    Generation logs every carved room and corridor at DEBUG, so INFO is the
    sensible default for anything but troubleshooting a single seed.
    """
    numeric_level = level_from_name(level)
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_logger_name,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
