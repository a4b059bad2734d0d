import logging
from logging.config import dictConfig

from huddle.utils.env_helper import env_bool

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
JSON_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'


def setup_logging(level: str = "INFO"):
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": LOG_FORMAT,
                },
                "json": {  # structured logs for prod
                    "format": JSON_FORMAT,
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if env_bool("LOG_JSON") else "default",
                },
            },
            "loggers": {
                "httpx": {"level": "WARNING"},
                "hpack": {"level": "WARNING"},
            },
            "root": {
                "level": level.upper(),
                "handlers": ["console"],
            },
        }
    )
