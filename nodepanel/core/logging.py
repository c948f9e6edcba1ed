import logging
import sys

from pythonjsonlogger import jsonlogger

CONTEXT_FIELDS = ("environment_id", "node_url", "token", "detail_level", "event")


def configure_logging(level: str = "INFO", service: str = "nodepanel") -> None:
    root = logging.getLogger()
    root.handlers.clear()

    fields = ("asctime", "levelname", "name", "message", *CONTEXT_FIELDS)
    formatter = jsonlogger.JsonFormatter(
        " ".join(f"%({field})s" for field in fields),
        static_fields={"service": service},
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root.addHandler(handler)
    root.setLevel(level.upper())
    # httpx logs every Jenkins request at INFO.
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
