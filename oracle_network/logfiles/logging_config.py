"""Logging configuration for the network runner."""
import logging

RESET = "\033[0m"

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[34m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}

LOG_FORMAT = "%(level_color)s[%(name)s:%(levelname)s]%(end_color)s [%(asctime)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def level_color(levelno: int) -> str:
    """Colour of the highest standard level not above levelno."""
    known = [level for level in LEVEL_COLORS if level <= levelno]
    return LEVEL_COLORS[max(known)] if known else RESET


def get_log_config(runner_config):
    """dictConfig mapping for the Runner section.

    `verbosity` names the root level, `log_format: json` switches the
    console handler to python-json-logger.
    """
    runner_config = runner_config or {}
    log_level = getattr(logging, str(runner_config.get("verbosity", "INFO")), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    formatter = "json" if runner_config.get("log_format") == "json" else "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": JSON_FORMAT,
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {
            "standard": {"class": "logging.StreamHandler", "formatter": formatter}
        },
        "loggers": {
            "": {"handlers": ["standard"], "level": log_level},
            # Engine echo and notifier chatter stay out of the network log
            "sqlalchemy.engine": {"level": logging.WARNING},
            "apprise": {"level": max(log_level, logging.WARNING)},
        },
    }
