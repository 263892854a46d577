"""
Logging Configuration and Utilities

Structured logging for the scheduling engine: structlog processors for
context and sanitisation, stdlib handlers with a JSON formatter, and a
context-carrying logger adapter used by the services.
"""

import asyncio
import logging
import logging.handlers
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from rental_repairs.config.settings import get_settings

# Context variables for operation tracking
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
actor_role: ContextVar[Optional[str]] = ContextVar('actor_role', default=None)

_HANDLER_MARKER = "_rental_repairs_handler"


class OperationContextProcessor:
    """Add operation context to log records"""

    def __call__(self, logger, method_name, event_dict):
        cid = correlation_id.get()
        if cid:
            event_dict['correlation_id'] = cid

        role = actor_role.get()
        if role:
            event_dict['actor_role'] = role

        settings = get_settings()
        event_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
        event_dict['service'] = settings.SERVICE_NAME
        event_dict['environment'] = settings.ENVIRONMENT

        return event_dict


class SanitizingLogProcessor:
    """Flag override/permission events and redact secrets"""

    flagged_keywords = ('override', 'permission', 'unauthorized', 'cancel')
    sensitive_keys = ('password', 'token', 'secret', 'credentials', 'authorization')

    def __call__(self, logger, method_name, event_dict):
        event_text = str(event_dict.get('event', '')).lower()
        if any(keyword in event_text for keyword in self.flagged_keywords):
            event_dict['audit_event'] = True

        self._sanitize_event_dict(event_dict)
        return event_dict

    def _sanitize_event_dict(self, event_dict: Dict[str, Any]):
        for key in list(event_dict.keys()):
            if any(sensitive in key.lower() for sensitive in self.sensitive_keys):
                event_dict[key] = '[REDACTED]'
            elif isinstance(event_dict[key], dict):
                self._sanitize_event_dict(event_dict[key])


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding source location to every record"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        cid = correlation_id.get()
        if cid and 'correlation_id' not in log_record:
            log_record['correlation_id'] = cid

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def configure_structured_logging():
        """Configure structured logging with structlog"""
        settings = get_settings()

        processors = [
            OperationContextProcessor(),
            SanitizingLogProcessor(),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if settings.logging.LOG_FORMAT == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.processors.KeyValueRenderer())

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def configure_standard_logging():
        """Configure the package logger with console and optional file handlers"""
        settings = get_settings()
        level = getattr(logging, settings.logging.LOG_LEVEL)

        package_logger = logging.getLogger("rental_repairs")
        package_logger.setLevel(level)

        # Only replace handlers this module installed earlier
        for handler in list(package_logger.handlers):
            if getattr(handler, _HANDLER_MARKER, False):
                package_logger.removeHandler(handler)

        if settings.logging.LOG_FORMAT == "json":
            formatter = CustomJsonFormatter(
                '%(asctime)s %(name)s %(levelname)s %(message)s'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        setattr(console_handler, _HANDLER_MARKER, True)
        package_logger.addHandler(console_handler)

        if settings.logging.LOG_FILE:
            log_path = Path(settings.logging.LOG_FILE)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_MARKER, True)
            package_logger.addHandler(file_handler)


class LoggerAdapter:
    """Logger adapter carrying a persistent context into every record"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context = {}

    def add_context(self, **kwargs):
        """Add context to all log messages"""
        self._context.update(kwargs)
        return self

    def remove_context(self, *keys):
        """Remove context keys"""
        for key in keys:
            self._context.pop(key, None)
        return self

    def clear_context(self):
        """Clear all context"""
        self._context.clear()
        return self

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def _log(self, level: int, message: str, *args, **kwargs):
        extra = dict(self._context)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra

        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name (defaults to the package logger)

    Returns:
        Enhanced logger adapter
    """
    return LoggerAdapter(logging.getLogger(name or "rental_repairs"))


def log_execution_time(logger_name: Optional[str] = None):
    """
    Decorator to log function execution time.

    Args:
        logger_name: Custom logger name
    """
    def decorator(func):
        logger = get_logger(logger_name or func.__module__)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = datetime.now(timezone.utc)
            try:
                return await func(*args, **kwargs)
            finally:
                execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
                logger.debug("Function executed", extra={
                    'function': func.__name__,
                    'execution_time': execution_time,
                })

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = datetime.now(timezone.utc)
            try:
                return func(*args, **kwargs)
            finally:
                execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
                logger.debug("Function executed", extra={
                    'function': func.__name__,
                    'execution_time': execution_time,
                })

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@contextmanager
def acting_role(role: Any):
    """Bind the acting user role to log records emitted inside the block."""
    value = getattr(role, "value", role)
    token = actor_role.set(str(value) if value else None)
    try:
        yield
    finally:
        actor_role.reset(token)


def setup_logging():
    """Initialize logging configuration"""
    settings = get_settings()
    if settings.logging.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging()

    LoggingConfig.configure_standard_logging()

    get_logger(__name__).debug("Logging system initialized", extra={
        'log_level': settings.logging.LOG_LEVEL,
        'log_format': settings.logging.LOG_FORMAT,
        'structured_logging': settings.logging.ENABLE_STRUCTURED_LOGGING,
    })


# Initialize logging when module is imported
setup_logging()

__all__ = [
    'get_logger',
    'setup_logging',
    'log_execution_time',
    'LoggerAdapter',
    'LoggingConfig',
    'CustomJsonFormatter',
    'correlation_id',
    'actor_role',
]
