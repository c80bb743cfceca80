# logger.py

import logging


class RequestIdDefault(logging.Filter):
    """ Give records from third-party loggers (httpx, uvicorn) a request_id so the format never breaks. """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "N/A"
        return True


_handler = logging.StreamHandler()
_handler.addFilter(RequestIdDefault())

# Configure logging into structured JSON format
logging.basicConfig(
    level=logging.INFO,
    format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "request_id": "%(request_id)s"}',
    datefmt='%Y-%m-%dT%H:%M:%S',
    handlers=[_handler],
)

# Named logger instance
logger = logging.getLogger("swag_order_logger")


def set_level(level: str):
    """ Apply the configured LOG_LEVEL to the service logger. """
    logger.setLevel(level.upper())


def log_info(message: str, request_id: str = "N/A"):
    logger.info(message, extra={"request_id": request_id})

def log_error(message: str, request_id: str = "N/A"):
    logger.error(message, extra={"request_id": request_id})

def log_debug(message: str, request_id: str = "N/A"):
    logger.debug(message, extra={"request_id": request_id})

def log_warning(message: str, request_id: str = "N/A"):
    logger.warning(message, extra={"request_id": request_id})
