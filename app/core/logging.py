# app/core/logging.py
import logging
import sys
from typing import Iterable
import colorlog

# pymongo logs every command at DEBUG; pricing issues several queries per order line
QUIET_LOGGERS = ("pymongo", "httpx", "asyncio")


def configure_logging(level=logging.INFO, *, app_name: str = "app", quiet: Iterable[str] = QUIET_LOGGERS):
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            f"%(log_color)s%(asctime)s %(levelname)-8s {app_name} [%(name)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
