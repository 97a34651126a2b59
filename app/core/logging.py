import logging
import sys
from logging.config import dictConfig
from app.core.config import LOG_LEVEL

# services whose warnings (holds, drift, degraded collaborators) are worth
# keeping even when the root level is raised
DOMAIN_LOGGERS = (
    "app.services.billing",
    "app.services.operations",
    "app.services.external",
    "app.core.scheduler",
)


def setup_logging():
    loggers = {
        # Used by request_logging_middleware
        "access": {
            "handlers": ["access_console"],
            "level": "INFO",
            "propagate": False,
        },
        # SQL echo is controlled by the engine, not the root level
        "sqlalchemy.engine": {"level": "WARNING"},
        "httpx": {"level": "WARNING"},
        "apscheduler": {"level": "INFO"},
    }
    for name in DOMAIN_LOGGERS:
        loggers[name] = {"level": LOG_LEVEL if LOG_LEVEL in ("DEBUG", "INFO") else "INFO"}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | %(request_id)s | "
                        "%(operator)s | %(method)s %(path)s | "
                        "%(status_code)s | %(process_time_ms)sms"
                    ),
                },
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                },
            },

            "loggers": loggers,

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"],
            },
        }
    )
