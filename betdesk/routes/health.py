"""
Liveness and Prometheus endpoints; none of these touch the database
"""

from flask import Blueprint, Response
from datetime import datetime, timezone
import logging

from betdesk.utils.metrics import get_metrics, METRICS_CONTENT_TYPE

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
@health_bp.route('/healthz')
def health_check():
    """Lightweight health check - NO database access"""
    return {'ok': True, 'status': 'healthy', 'timestamp': datetime.now(timezone.utc).isoformat()}


@health_bp.route('/metrics')
def metrics():
    return Response(get_metrics(), mimetype=METRICS_CONTENT_TYPE)
