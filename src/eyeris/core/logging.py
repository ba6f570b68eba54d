import logging
import sys
from typing import TextIO

import structlog

from eyeris.core.context import get_correlation_id


def correlation_id_processor(logger, method_name, event_dict):
    """Add correlation_id to the log record if one is set for the current task."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def configure_logging(level: str = "INFO", stream: TextIO = sys.stdout) -> None:
    """Configure structured JSON logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            correlation_id_processor,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Returns a structlog logger.

    Args:
        name: Hierarchical logger name (e.g., 'api.analyze', 'processor.transcoder')
    """
    return structlog.get_logger(name)


class LoggerRegistry:
    """
    Logger registry with standardized naming conventions.

    Provides factory methods for creating loggers with consistent
    hierarchical names across the application.
    """

    @staticmethod
    def get_api_logger(endpoint: str) -> structlog.stdlib.BoundLogger:
        """Get a logger for API endpoints."""
        return get_logger(f"api.{endpoint}")

    @staticmethod
    def get_processor_logger(processor_name: str) -> structlog.stdlib.BoundLogger:
        """Get a logger for image processing components."""
        return get_logger(f"processor.{processor_name}")

    @staticmethod
    def get_service_logger(service_name: str) -> structlog.stdlib.BoundLogger:
        """Get a logger for services."""
        return get_logger(f"service.{service_name}")

    @staticmethod
    def get_infrastructure_logger(component: str) -> structlog.stdlib.BoundLogger:
        """Get a logger for infrastructure components such as provider clients."""
        return get_logger(f"infrastructure.{component}")
