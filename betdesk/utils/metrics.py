"""
Prometheus metrics for bets, settlements and HTTP traffic
"""

import logging
from prometheus_client import Counter, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

_metrics_registry = CollectorRegistry()

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=_metrics_registry
)

BETS_PLACED = Counter(
    'bets_placed_total',
    'Total bets accepted',
    ['game_type'],
    registry=_metrics_registry
)

BET_VOLUME = Counter(
    'bet_volume_paise_total',
    'Total amount wagered in paise',
    ['game_type'],
    registry=_metrics_registry
)

SETTLEMENTS = Counter(
    'settlements_total',
    'Total bets settled',
    ['game_type'],
    registry=_metrics_registry
)


def get_metrics_registry():
    return _metrics_registry


def record_bet(game_type: str, amount: int):
    BETS_PLACED.labels(game_type=game_type).inc()
    BET_VOLUME.labels(game_type=game_type).inc(amount)


def record_settlements(game_type: str, count: int):
    if count:
        SETTLEMENTS.labels(game_type=game_type).inc(count)


def record_request(method: str, endpoint: str, status_code: int):
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=status_code).inc()


def get_metrics():
    """Get Prometheus metrics in text format"""
    return generate_latest(_metrics_registry).decode('utf-8')


METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST
