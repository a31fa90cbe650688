"""
Error reporting and logging setup.

Errors are written as structured entries to the ``errors`` log stream in the
shape Error Reporting ingests, so they are grouped and alerted on rather than
lost among ordinary log lines.
"""
import logging
import sys
import traceback
from typing import Any, Dict, Optional

import stripe
import structlog

from storefront.config import LOG_LEVEL, SERVICE_NAME

GENERIC_ERROR_MESSAGE = "An error occurred, developers have been alerted"

# The stream name must contain "err" to be picked up by Error Reporting.
error_log = structlog.get_logger("errors")


def setup_logging() -> None:
    """Configure structlog to render JSON through the standard library root logger."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    logging.getLogger("stripe").setLevel(logging.WARNING)


def user_facing_message(error: BaseException) -> str:
    """Sanitize an error for display: only typed processor errors are safe to show."""
    if isinstance(error, stripe.StripeError):
        details = error.error
        if details is not None and getattr(details, "type", None):
            return getattr(details, "message", None) or error.user_message or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


def report_error(
    error: BaseException,
    context: Optional[Dict[str, Any]] = None,
    function_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Forward an exception, stack trace included, to the error stream.

    Args:
        error: The exception being reported
        context: Caller metadata such as ``{"user": user_id}``
        function_name: Handler that failed; defaults to the service name

    Returns:
        dict: The entry that was written
    """
    function_name = function_name or SERVICE_NAME
    entry = {
        "resource": {
            "type": "cloud_function",
            "labels": {"function_name": function_name},
        },
        "message": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
        "serviceContext": {
            "service": function_name,
            "resourceType": "cloud_function",
        },
        "context": context or {},
    }
    error_log.error("error_reported", **entry)
    return entry
