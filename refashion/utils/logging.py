"""
Structured logging setup using structlog with masking of secrets and signatures.
"""

import logging
import sys
from typing import Any, Dict, Union

import structlog
from rich.console import Console
from rich.logging import RichHandler

from refashion.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        mask_processor,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.extend(
            [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        )
    else:
        processors.extend([structlog.dev.ConsoleRenderer(colors=True)])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.LOG_LEVEL)
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.ENVIRONMENT == "development" and settings.LOG_FORMAT == "text":
        console = Console()
        rich_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=True,
            markup=True,
            rich_tracebacks=True,
        )

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(rich_handler)


# Keys whose values never reach the log output in clear text
SENSITIVE_FIELDS = {
    "secret",
    "api_key",
    "fal_key",
    "token",
    "password",
    "authorization",
    "signature",
    "x-refashion-secret",
}


def mask_sensitive_data(data: Union[str, Dict, Any]) -> Union[str, Dict, Any]:
    """Mask sensitive values in log data."""
    if isinstance(data, dict):
        return _mask_dict(data)
    elif isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item) for item in data]
    else:
        return data


def _mask_value(value: Any) -> str:
    if isinstance(value, str) and len(value) > 8:
        return f"{value[:4]}***{value[-2:]}"
    return "***"


def _mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Mask sensitive fields in a dictionary."""
    masked_data = {}

    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive_field in key_lower for sensitive_field in SENSITIVE_FIELDS):
            masked_data[key] = _mask_value(value)
        else:
            masked_data[key] = mask_sensitive_data(value)

    return masked_data


def mask_processor(logger, method_name, event_dict):
    """Structlog processor to mask sensitive data."""
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        if any(sensitive_field in key.lower() for sensitive_field in SENSITIVE_FIELDS):
            event_dict[key] = _mask_value(value)
        else:
            event_dict[key] = mask_sensitive_data(value)

    return event_dict


def get_logger(name: str = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_security_event(
    event_type: str,
    ip_address: str = None,
    details: Dict[str, Any] = None,
    **kwargs: Any,
) -> None:
    """Log security-related events such as rejected webhooks."""
    logger = get_logger("security")

    log_data = {"event_type": event_type, **kwargs}

    if ip_address:
        log_data["ip_address"] = ip_address

    if details:
        log_data["details"] = details

    logger.warning("Security event detected", **log_data)


def log_business_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    username: str = None,
    details: Dict[str, Any] = None,
    **kwargs: Any,
) -> None:
    """Log job lifecycle events for the audit trail."""
    logger = get_logger("business")

    log_data = {
        "event_type": event_type,
        "entity_type": entity_type,
        "entity_id": entity_id,
        **kwargs,
    }

    if username:
        log_data["username"] = username

    if details:
        log_data["details"] = details

    logger.info("Business event occurred", **log_data)
