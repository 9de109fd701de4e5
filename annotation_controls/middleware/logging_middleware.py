"""
Logging Middleware for FastAPI

Request/response logging with request ids, timing and unhandled error capture.
"""

import json
import time
import uuid
from typing import Any, Callable, Dict
from datetime import datetime, timezone

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from annotation_controls.utils.logger import (
    get_logger, set_request_context, set_viewer_context, clear_context, log_exception
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each API request and its outcome."""

    def __init__(self, app: ASGIApp, config: Dict[str, Any] = None):
        super().__init__(app)
        self.config = config or {}

        self.api_logger = get_logger('main')
        self.error_logger = get_logger('errors')

        self.exclude_paths = set(self.config.get('exclude_paths', []))
        self.slow_request_threshold = self.config.get('slow_request_threshold', 1000)  # ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
        method = request.method
        endpoint = request.url.path
        viewer_id = request.headers.get('x-viewer-id')

        set_request_context(request_id, endpoint, method, viewer_id)
        if viewer_id:
            set_viewer_context(viewer_id, request.headers.get('x-viewer-display-name'))

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            log_exception(self.error_logger, e, {
                'request_id': request_id,
                'endpoint': endpoint,
                'method': method,
            })
            response = JSONResponse(
                status_code=500,
                content={
                    'error': 'Internal server error',
                    'request_id': request_id,
                    'timestamp': datetime.now(timezone.utc).isoformat()
                }
            )

        response_time_ms = (time.time() - start_time) * 1000
        log_data = {
            'event': 'request_completed',
            'request_id': request_id,
            'method': method,
            'endpoint': endpoint,
            'status_code': response.status_code,
            'response_time_ms': round(response_time_ms, 2),
        }

        if response_time_ms > self.slow_request_threshold:
            self.api_logger.warning(json.dumps({**log_data, 'slow_request': True}, default=str))
        else:
            self.api_logger.info(json.dumps(log_data, default=str))

        response.headers['X-Request-ID'] = request_id
        clear_context()
        return response
