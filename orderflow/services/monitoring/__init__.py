"""
Monitoring: structured JSON logging.
"""

from orderflow.services.monitoring.logging import RunJsonFormatter, bind_run_id, setup_logging

__all__ = [
    "RunJsonFormatter",
    "bind_run_id",
    "setup_logging",
]
