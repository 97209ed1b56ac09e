import logging
import sys
import structlog

# stdlib level per environment when LOG_LEVEL is not set
DEFAULT_LEVELS = {"dev": "DEBUG", "test": "WARNING", "prod": "INFO"}


def configure_logging(env: str = "dev", level: str | None = None) -> None:
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if env == "prod":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=env == "dev"))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=(level or DEFAULT_LEVELS.get(env, "INFO")).upper(),
        force=True,
    )


logger = structlog.get_logger("pcm")
