"""
Request logging for the interview API.

Every request produces a ``request_started`` and a ``request_completed``
JSON event. Link tokens are cut out of paths, candidate emails and IPs are
masked in values, and credentials are dropped by field name. Upload and
video bodies are described by size and range, never read.
"""

import logging
import time
import json
import re
import uuid
import traceback
from typing import Callable, Any, Dict, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


REDACTED = "[REDACTED]"

# Field names whose values are never logged
SECRET_FIELDS = re.compile(
    r'password|token|api[_-]?key|secret|authorization|cookie|signature',
    re.IGNORECASE,
)

VALUE_MASKS = (
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[EMAIL]'),
    (re.compile(r'\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b'), '[IP]'),
)

# Segment after one of these is an interview link token
TOKEN_SEGMENT = re.compile(
    r'/(link|validate|mark-used|video-answer|video-answers|responses|stitch-video|interview)/[^/]+'
)

PROBE_PATHS = ('/health', '/ready', '/metrics')

BODY_METHODS = ('POST', 'PUT', 'PATCH')


def is_sensitive_field(field_name: str) -> bool:
    return SECRET_FIELDS.search(field_name) is not None


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """Mask secrets by key and emails/IPs inside string values, recursively."""
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_field(str(key))
            else mask_sensitive_data(value, depth + 1, max_depth)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]
    if isinstance(data, str):
        for pattern, replacement in VALUE_MASKS:
            data = pattern.sub(replacement, data)
    return data


def mask_headers(headers: dict) -> dict:
    """Redact credential headers. The bearer scheme is kept for debugging."""
    masked = {}
    for key, value in headers.items():
        if key.lower() == 'authorization' and isinstance(value, str) and ' ' in value:
            masked[key] = f"{value.split(' ', 1)[0]} {REDACTED}"
        elif is_sensitive_field(key):
            masked[key] = REDACTED
        else:
            masked[key] = value
    return masked


def mask_path(path: str) -> str:
    """Replace interview tokens embedded in a URL path."""
    return TOKEN_SEGMENT.sub(lambda m: f"/{m.group(1)}/[TOKEN]", path)


def should_log_request(path: str) -> bool:
    return not path.startswith(PROBE_PATHS)


def get_client_ip(request: Request) -> str:
    """
    Client IPv4 address with the last octet hidden.

    The first ``x-forwarded-for`` hop wins over the socket peer. Anything that
    is not IPv4 is reported as ``unknown``.
    """
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        ip = forwarded_for.split(',')[0].strip()
    else:
        ip = request.client.host if request.client else 'unknown'

    octets = ip.split('.')
    if len(octets) != 4:
        return 'unknown'
    return '.'.join(octets[:3] + ['xxx'])


def _describe_payload(request: Request) -> Dict[str, Any]:
    """Size and range of a media request, without touching the body."""
    info = {}
    content_type = request.headers.get('content-type', '')
    if content_type.startswith('multipart/'):
        info['upload_bytes'] = request.headers.get('content-length', 'unknown')
    if 'range' in request.headers:
        info['range'] = request.headers['range']
    return info


def _emit(status_code: Optional[int], event: Dict[str, Any]) -> None:
    message = json.dumps(event, default=str)
    if status_code is None or status_code >= 500:
        logger.error(message)
    elif status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request as a pair of JSON events.

    The ``x-request-id`` header is reused when the caller sends one and
    echoed on every response, probes included.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers['x-request-id'] = request_id
            return response

        path = mask_path(request.url.path)
        started = {
            'event': 'request_started',
            'request_id': request_id,
            'method': request.method,
            'path': path,
            'query_params': mask_sensitive_data(dict(request.query_params)),
            'client_ip': get_client_ip(request),
            'user_agent': request.headers.get('user-agent', 'unknown'),
            'headers': mask_headers(dict(request.headers)),
            **_describe_payload(request),
        }
        if self.log_request_body and request.method in BODY_METHODS:
            body = await self._json_body(request)
            if body is not None:
                started['body'] = mask_sensitive_data(body)
        logger.info(json.dumps(started, default=str))

        start_time = time.perf_counter()
        response = None
        completed = {'event': 'request_completed', 'request_id': request_id, 'method': request.method, 'path': path}

        try:
            response = await call_next(request)
        except Exception as exc:
            completed['error'] = {'type': type(exc).__name__}
            logger.error(
                f"Request processing error: {request.method} {path}",
                exc_info=True,
                extra={'request_id': request_id},
            )
            raise
        finally:
            completed['duration_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
            completed['status_code'] = response.status_code if response is not None else 500
            _emit(response.status_code if response is not None else None, completed)

        response.headers['x-request-id'] = request_id
        return response

    async def _json_body(self, request: Request) -> Any:
        # Multipart video uploads are skipped here; only JSON is read.
        if 'application/json' not in request.headers.get('content-type', ''):
            return None
        raw = await request.body()
        if len(raw) > self.max_body_size:
            return {'_truncated': True, '_size': len(raw)}
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {'_unparseable': True}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record. Link tokens are shortened to a prefix."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        request_id = getattr(record, 'request_id', None)
        if request_id:
            entry['request_id'] = request_id

        token = getattr(record, 'interview_token', None)
        if token:
            entry['interview_token'] = f"{token[:6]}..."

        if record.exc_info:
            exc_type, exc, tb = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc),
                'traceback': traceback.format_exception(exc_type, exc, tb),
            }
        return json.dumps(entry)


NOISY_LOGGERS = ('uvicorn.access', 'sqlalchemy.engine', 'botocore', 'aiobotocore', 'celery.redirected')


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Install a single stdout handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json_logs: JSON records when true, plain text otherwise
    """
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        StructuredFormatter() if json_logs
        else logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
