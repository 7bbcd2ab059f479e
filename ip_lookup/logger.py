from contextvars import ContextVar
from logging import Filter, LogRecord, config, getLevelName, getLogger

from ip_lookup.config import get_settings

LOGGER_NAME = "ip_lookup"
LOG_LEVEL = getLevelName(get_settings().log_level.upper())  # DEBUG, INFO, WARNING, ERROR

# Request id of the HTTP request currently being handled, "-" outside of requests.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(Filter):
    """Attach the current request id to every record passing through a handler."""

    def filter(self, record: LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


log_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": RequestIdFilter},
    },
    "formatters": {
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s',
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "use_colors": True,
        },
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(asctime)s - [%(request_id)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "use_colors": True,
        },
    },
    "handlers": {
        "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "filters": ["request_id"],
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        LOGGER_NAME: {"handlers": ["default"], "level": LOG_LEVEL, "propagate": False},
        "uvicorn": {"handlers": ["default"], "level": LOG_LEVEL, "propagate": True},
        "uvicorn.access": {"handlers": ["access"], "level": LOG_LEVEL, "propagate": False},
        "uvicorn.error": {"level": LOG_LEVEL, "propagate": True},
    },
}

config.dictConfig(log_config)

logger = getLogger(LOGGER_NAME)
