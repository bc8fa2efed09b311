"""
Logging setup for betdesk.

Console output is human readable; production also writes one JSON object per
line to LOG_FILE. Records emitted inside a request carry the correlation id and
the acting user so fund movements can be traced back to a request.
"""

import logging
import json
import time
import uuid
from flask import g, request, has_request_context
from datetime import datetime, timezone

_STANDARD_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

BUSINESS_LOGGER = 'betdesk.business'
SECURITY_LOGGER = 'betdesk.security'


def _request_fields():
    if not has_request_context():
        return {}
    return {
        'correlation_id': getattr(g, 'correlation_id', None),
        'user_id': getattr(g, 'user_id', None),
        'user_role': getattr(g, 'user_role', None),
        'method': request.method,
        'path': request.path,
        'remote_addr': request.remote_addr,
    }


class StructuredFormatter(logging.Formatter):
    """One JSON document per record"""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f'{record.module}:{record.funcName}:{record.lineno}',
        }
        entry.update(_request_fields())

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and key not in entry:
                entry[key] = value

        return json.dumps(entry, default=str)


class CorrelationFilter(logging.Filter):
    """Stamps correlation_id onto every record for the console format"""

    def filter(self, record):
        record.correlation_id = getattr(g, 'correlation_id', '-') if has_request_context() else '-'
        return True


def setup_structured_logging(production=False, level='INFO', log_file=None):
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(correlation_id)s] %(name)s %(levelname)s %(message)s'
    ))
    console_handler.addFilter(CorrelationFilter())
    root_logger.addHandler(console_handler)

    if production and log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    return root_logger


def get_correlation_id() -> str:
    """Correlation id for the current request, taken from X-Correlation-ID when the caller sends one"""
    if not has_request_context():
        return uuid.uuid4().hex

    if not hasattr(g, 'correlation_id'):
        g.correlation_id = request.headers.get('X-Correlation-ID') or uuid.uuid4().hex
        g.request_start_time = time.time()

    return g.correlation_id


def set_user_context(user):
    if has_request_context():
        g.user_id = user.id
        g.user_role = user.role


def log_business_event(event_type: str, **fields):
    """Bets, settlements and wallet movements. Amounts are logged in paise."""
    logging.getLogger(BUSINESS_LOGGER).info(
        'business event %s', event_type,
        extra={'event_type': event_type, **fields},
    )


def log_security_event(event_type: str, severity: str = 'info', **fields):
    level = logging.WARNING if severity == 'warning' else logging.INFO
    logging.getLogger(SECURITY_LOGGER).log(
        level, 'security event %s', event_type,
        extra={'event_type': event_type, 'severity': severity, **fields},
    )
