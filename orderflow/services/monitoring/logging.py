"""
Structured JSON Logging with Run ID
Routes structlog events through stdlib logging into a JSON formatter that
tags every entry with the run id of the packet being processed.
"""

import logging
import sys
import uuid
from typing import Optional

import structlog
from pythonjsonlogger import jsonlogger

from orderflow.config import settings

SERVICE_NAME = "orderflow-routing"


class RunJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with automatic run ID injection.

    The run ID is read from structlog context variables (set by bind_run_id),
    so every log line of one batch can be correlated.
    """

    def add_fields(self, log_record, record, message_dict):
        """
        Add custom fields to log record.

        Adds:
        - run_id: From structlog contextvars or 'none' if not bound
        - service: Application name
        - environment: Deployment environment from settings
        """
        super().add_fields(log_record, record, message_dict)

        log_record['run_id'] = structlog.contextvars.get_contextvars().get('run_id') or 'none'
        log_record['service'] = SERVICE_NAME
        log_record['environment'] = settings.environment


def setup_logging(level: Optional[str] = None):
    """
    Configure structured JSON logging to stdout.

    Sets up:
    - RunJsonFormatter on a stdout StreamHandler attached to the root logger
    - structlog rendering event dicts as stdlib log calls, so
      logger.info("event", key=value) becomes one JSON line with key as a field

    Args:
        level: Log level name, defaults to settings.log_level

    Returns:
        logging.Handler: The configured handler (for testing)
    """
    handler = logging.StreamHandler(sys.stdout)

    formatter = RunJsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={
            'asctime': 'timestamp',
            'levelname': 'level'
        }
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return handler


def bind_run_id(run_id: Optional[str] = None) -> str:
    """Bind a run id for the current batch; returns the id bound."""
    run_id = run_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(run_id=run_id)
    return run_id
