import logging
import sys
import time

from pythonjsonlogger import jsonlogger

from .config import settings

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super(ServiceJsonFormatter, self).add_fields(log_record, record, message_dict)
        log_record['service'] = settings.service_name
        log_record['environment'] = settings.environment
        log_record['timestamp'] = time.strftime(
            '%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)
        )


def setup_logging(level: str = None, json_format: bool = None) -> None:
    """Configure the root logger for the application."""
    level = level or settings.log_level
    json_format = settings.log_json if json_format is None else json_format

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(ServiceJsonFormatter('%(timestamp)s %(levelname)s %(service)s %(environment)s %(name)s %(message)s'))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers to avoid duplicates
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    root_logger.addHandler(handler)

    # Set specific logger levels
    logging.getLogger('google').setLevel(logging.WARNING)
    logging.getLogger('grpc').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
