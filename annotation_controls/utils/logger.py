"""
Logging System for the Annotation Controls Service

Structured logging with JSON formatting and specialised loggers for
application events, audit trail, security events and errors.
"""

import os
import sys
import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler
import structlog
import contextvars

from annotation_controls.core.config import settings


class AnnotationJSONRenderer:
    """JSON renderer that stamps service and request context onto every entry."""

    def __call__(self, logger, method_name, event_dict):
        event_dict.update({
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'environment': os.getenv('ENVIRONMENT', 'development'),
            'service': 'annotation-controls',
        })

        request_context = get_request_context()
        if request_context:
            event_dict['request'] = request_context

        viewer_context = get_viewer_context()
        if viewer_context:
            event_dict['viewer'] = viewer_context

        return json.dumps(event_dict, ensure_ascii=False, default=str)


class RequestContextFilter(logging.Filter):
    """Filter to add request context to log records."""

    def filter(self, record):
        context = get_request_context()
        if context:
            record.request_id = context.get('request_id')
            record.viewer_id = context.get('viewer_id')
            record.endpoint = context.get('endpoint')
            record.method = context.get('method')
        return True


# Context variables for tracking request and viewer information
_request_context = contextvars.ContextVar('request_context', default=None)
_viewer_context = contextvars.ContextVar('viewer_context', default=None)


def set_request_context(request_id: str, endpoint: str, method: str, viewer_id: Optional[str] = None):
    """Set request context for logging."""
    context = {
        'request_id': request_id,
        'endpoint': endpoint,
        'method': method,
    }
    if viewer_id:
        context['viewer_id'] = viewer_id
    _request_context.set(context)


def get_request_context() -> Optional[Dict[str, Any]]:
    return _request_context.get(None)


def set_viewer_context(viewer_id: str, display_name: Optional[str] = None):
    context = {'viewer_id': viewer_id}
    if display_name:
        context['display_name'] = display_name
    _viewer_context.set(context)


def get_viewer_context() -> Optional[Dict[str, Any]]:
    return _viewer_context.get(None)


def clear_context():
    """Clear all context variables."""
    _request_context.set(None)
    _viewer_context.set(None)


class LoggerSetup:
    """Centralized logger setup for the service."""

    def __init__(self, log_level: str = "INFO", log_dir: str = "logs", log_to_file: bool = False):
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_dir = Path(log_dir)
        self.log_to_file = log_to_file
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                AnnotationJSONRenderer(),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _file_handler(self, filename: str, level: int, backup_count: int) -> logging.Handler:
        handler = TimedRotatingFileHandler(
            filename=self.log_dir / filename,
            when='midnight',
            interval=1,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.addFilter(RequestContextFilter())
        handler.setFormatter(logging.Formatter('%(message)s'))
        return handler

    def _build(self, name: str, level: int, filename: str, backup_count: int,
               console: bool = False) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers.clear()

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            logger.addHandler(console_handler)

        if self.log_to_file:
            logger.addHandler(self._file_handler(filename, level, backup_count))

        return logger

    def setup_main_logger(self) -> logging.Logger:
        console = os.getenv('ENVIRONMENT', 'development') == 'development'
        return self._build("annotation_controls", self.log_level, "application.log", 10, console=console)

    def setup_audit_logger(self) -> logging.Logger:
        # Votes, edits, deletions and flags
        return self._build("audit_trail", logging.INFO, "audit_trail.log", 365)

    def setup_security_logger(self) -> logging.Logger:
        return self._build("security", logging.INFO, "security.log", 90)

    def setup_error_logger(self) -> logging.Logger:
        return self._build("errors", logging.ERROR, "errors.log", 90)


# Global logger instances
_logger_setup = None
_loggers = {}


def setup_logging(log_level: str = None, log_dir: str = None, log_to_file: bool = None) -> Dict[str, logging.Logger]:
    """Setup all loggers and return dictionary of configured loggers."""
    global _logger_setup, _loggers

    _logger_setup = LoggerSetup(
        log_level=log_level or settings.LOG_LEVEL,
        log_dir=log_dir or settings.LOG_DIR,
        log_to_file=settings.LOG_TO_FILE if log_to_file is None else log_to_file,
    )

    _loggers = {
        'main': _logger_setup.setup_main_logger(),
        'audit': _logger_setup.setup_audit_logger(),
        'security': _logger_setup.setup_security_logger(),
        'errors': _logger_setup.setup_error_logger(),
    }

    return _loggers


def get_logger(name: str = 'main') -> logging.Logger:
    """
    Get a configured logger by name.

    Module names resolve to a child of the main logger so records carry
    their origin and share its handlers.
    """
    if not _loggers:
        setup_logging()

    if name in _loggers:
        return _loggers[name]
    main = _loggers['main']
    if name.startswith(f"{main.name}."):
        return logging.getLogger(name)
    return main.getChild(name)


def get_struct_logger(name: str = "annotation_controls"):
    """Structured logger bound into the stdlib logger hierarchy."""
    if not _loggers:
        setup_logging()
    return structlog.get_logger(name)


def log_exception(logger: logging.Logger, exception: Exception, context: Dict[str, Any] = None):
    """Log an exception with full context and stack trace."""
    error_data = {
        'event': 'exception_occurred',
        'exception_type': type(exception).__name__,
        'exception_message': str(exception),
        'stack_trace': traceback.format_exc(),
    }

    if context:
        error_data['context'] = context

    request_context = get_request_context()
    if request_context:
        error_data['request'] = request_context

    logger.error(json.dumps(error_data, default=str))


def log_user_action(user_id: Optional[str], action: str, resource_type: str,
                    resource_id: str = None, details: Dict[str, Any] = None):
    """Log viewer action for audit trail."""
    audit_logger = get_logger('audit')

    audit_data = {
        'event': 'user_action',
        'user_id': user_id,
        'action': action,
        'resource_type': resource_type,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if resource_id:
        audit_data['resource_id'] = resource_id

    if details:
        audit_data['details'] = details

    request_context = get_request_context()
    if request_context:
        audit_data['request'] = request_context

    audit_logger.info(json.dumps(audit_data, default=str))


def log_security_event(event_type: str, severity: str, details: Dict[str, Any] = None):
    """Log security event."""
    security_logger = get_logger('security')

    security_data = {
        'event': 'security_event',
        'event_type': event_type,
        'severity': severity,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if details:
        security_data['details'] = details

    request_context = get_request_context()
    if request_context:
        security_data['request'] = request_context

    if severity.lower() in ['critical', 'high']:
        security_logger.error(json.dumps(security_data, default=str))
    elif severity.lower() == 'medium':
        security_logger.warning(json.dumps(security_data, default=str))
    else:
        security_logger.info(json.dumps(security_data, default=str))
