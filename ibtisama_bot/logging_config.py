from loguru import logger
import sys

from .config import get_settings


def configure_logging() -> None:
    settings = get_settings()
    logger.remove()

    log_format = (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[request_id]} | {name}:{function}:{line} | {message}"
        if not settings.log_json
        else "{message}"
    )

    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stdout,
        level=settings.log_level.upper(),
        backtrace=False,
        diagnose=False,
        format=log_format,
        serialize=settings.log_json,
        enqueue=True,
    )


