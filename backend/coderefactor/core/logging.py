"""
Structured logging utilities

This module provides structured logging capabilities for better
observability and debugging. Key features:

- JSON-formatted log output for parsing
- Context managers for timing operations
- Specialized loggers for LLM and HTTP requests
- Field inheritance for related log entries
"""
import logging
import json
import time
from typing import Any, Dict, Optional
from contextlib import contextmanager


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "openai",
    "sqlalchemy",
    "sqlalchemy.engine",
)


def configure_logging(debug: bool = False) -> None:
    """
    Configure root logging once at startup.

    Third-party loggers are kept at WARNING; the application package logs
    at INFO (DEBUG when debug mode is on).
    """
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("coderefactor").setLevel(logging.DEBUG if debug else logging.INFO)


class StructuredLogger:
    """
    Logger that outputs structured JSON for important events.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Refactor completed", language="react", duration_ms=812.4)
    """

    def __init__(self, name: str):
        """
        Initialize the structured logger.

        Args:
            name: Logger name (typically __name__)
        """
        self.logger = logging.getLogger(name)
        self.default_fields: Dict[str, Any] = {}

    def _log(self, log_level: int, message: str, **fields):
        """Internal logging method with JSON formatting"""
        data = {
            **self.default_fields,
            **fields,
            "message": message,
            "timestamp": time.time()
        }
        self.logger.log(log_level, json.dumps(data, default=str))

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, level="info", **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, level="warning", **fields)

    def error(self, message: str, **fields):
        self._log(logging.ERROR, message, level="error", **fields)

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, level="debug", **fields)

    def with_fields(self, **fields) -> "StructuredLogger":
        """
        Create a child logger with additional default fields.

            request_logger = logger.with_fields(batch="refactor-zip")
            request_logger.info("Processing started")

        Returns:
            New StructuredLogger with inherited fields
        """
        child = StructuredLogger(self.logger.name)
        child.default_fields = {**self.default_fields, **fields}
        return child


@contextmanager
def log_duration(operation: str, logger: Optional[StructuredLogger] = None, **extra_fields):
    """
    Context manager to log operation duration.

    Usage:
        with log_duration("zip_extraction", files=12):
            entries = extract_code_files(data)

    Args:
        operation: Name of the operation being timed
        logger: Optional StructuredLogger (creates one if not provided)
        **extra_fields: Additional fields to include in the log
    """
    if logger is None:
        logger = get_logger("coderefactor.timing")

    start = time.perf_counter()
    error_occurred = None
    try:
        yield
    except Exception as e:
        error_occurred = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        if error_occurred:
            logger.error(
                f"{operation} failed",
                operation=operation,
                duration_ms=round(duration_ms, 2),
                error=error_occurred,
                **extra_fields
            )
        else:
            logger.info(
                f"{operation} completed",
                operation=operation,
                duration_ms=round(duration_ms, 2),
                **extra_fields
            )


def log_llm_request(
    model: str,
    language: str,
    duration_ms: float,
    input_tokens: int = 0,
    output_tokens: int = 0,
    error: Optional[str] = None,
    error_code: Optional[Any] = None,
    logger: Optional[StructuredLogger] = None
):
    """
    Log a refactor completion request with its token counts and latency.

    Args:
        model: Model name used
        language: Language tag of the submitted code
        duration_ms: Request duration in milliseconds
        input_tokens: Prompt tokens reported by the provider
        output_tokens: Completion tokens reported by the provider
        error: Error message if request failed
        error_code: Provider status code or sentinel if request failed
        logger: Optional StructuredLogger (creates one if not provided)
    """
    if logger is None:
        logger = get_logger("coderefactor.refactor_service")

    log_data = {
        "event": "llm_request",
        "model": model,
        "language": language,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "duration_ms": round(duration_ms, 2),
    }

    if error:
        log_data["error"] = error
        log_data["error_code"] = error_code
        logger.error("LLM request failed", **log_data)
    else:
        logger.info("LLM request completed", **log_data)


def log_http_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
    logger: Optional[StructuredLogger] = None
):
    """Log one inbound HTTP request/response pair"""
    if logger is None:
        logger = get_logger("coderefactor.http")

    logger.info(
        f"{method} {path} -> {status_code}",
        event="http_request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
        client_ip=client_ip,
    )


def log_security_event(
    event_type: str,
    ip_address: Optional[str] = None,
    success: bool = True,
    logger: Optional[StructuredLogger] = None,
    **extra_fields
):
    """
    Log security-related events (rate limiting, rejected uploads, etc.).

    Args:
        event_type: Type of security event
        ip_address: Client IP address
        success: Whether the event was successful
        logger: Optional StructuredLogger (creates one if not provided)
        **extra_fields: Additional event-specific fields
    """
    if logger is None:
        logger = get_logger("coderefactor.security")

    log_level = logging.INFO if success else logging.WARNING
    logger._log(
        log_level,
        f"Security event: {event_type}",
        event="security",
        event_type=event_type,
        ip_address=ip_address,
        success=success,
        **extra_fields
    )


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

        from coderefactor.core.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Something happened", language="typescript")

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
