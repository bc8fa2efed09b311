"""
Bet throttling backed by Redis token buckets.

Every bet-placing endpoint draws from one bucket per player, so spreading bets
across coin flip, markets and matches does not raise the ceiling. Without a
reachable Redis the limiter lets every request through.
"""

import time
import logging
import redis
from collections import namedtuple
from functools import wraps
from flask import request, jsonify, session, current_app

logger = logging.getLogger(__name__)

RateDecision = namedtuple('RateDecision', 'allowed remaining retry_after reason')


class TokenBucketRateLimiter:

    def __init__(self, redis_url=None):
        self.redis_client = None
        if redis_url:
            try:
                self.redis_client = redis.from_url(redis_url)
                self.redis_client.ping()
            except redis.RedisError as e:
                logger.warning(f"Bet limiter running without Redis: {e}")
                self.redis_client = None

    @staticmethod
    def bucket_key(player, bucket):
        return f"betdesk:throttle:{bucket}:{player}"

    def take(self, player, bucket='bets', capacity=60, period=60):
        """
        Take one token from the player's bucket.

        capacity tokens refill evenly over period seconds. The returned
        retry_after is the number of seconds until the next token exists.
        """
        if not self.redis_client:
            return RateDecision(True, capacity, 0, 'no_redis')

        key = self.bucket_key(player, bucket)
        refill_per_second = capacity / float(period)
        now = time.time()
        try:
            tokens, stamp = self.redis_client.hmget(key, 'tokens', 'stamp')
            tokens = float(capacity) if tokens is None else float(tokens)
            elapsed = 0.0 if stamp is None else now - float(stamp)
            tokens = min(float(capacity), tokens + elapsed * refill_per_second)

            allowed = tokens >= 1.0
            if allowed:
                tokens -= 1.0

            pipe = self.redis_client.pipeline()
            pipe.hset(key, mapping={'tokens': tokens, 'stamp': now})
            pipe.expire(key, period)
            pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Bet limiter error for player {player}: {e}")
            return RateDecision(True, capacity, 0, 'redis_error')

        if allowed:
            return RateDecision(True, int(tokens), 0, 'ok')
        wait = (1.0 - tokens) / refill_per_second
        return RateDecision(False, 0, max(int(wait + 0.999), 1), 'throttled')


_limiter = None


def get_rate_limiter():
    global _limiter
    if _limiter is None:
        _limiter = TokenBucketRateLimiter(current_app.config.get('REDIS_URL'))
    return _limiter


def reset_rate_limiter():
    """Forget the cached limiter; the next bet rebuilds it from app config"""
    global _limiter
    _limiter = None


def rate_limit(bucket='bets', per_minute=None):
    """Throttle a bet-placing view; per_minute defaults to BET_RATE_LIMIT_PER_MINUTE"""
    def decorator(view):
        @wraps(view)
        def throttled(*args, **kwargs):
            capacity = per_minute or current_app.config.get('BET_RATE_LIMIT_PER_MINUTE', 60)
            player = session.get('user_id') or request.remote_addr or 'anonymous'

            decision = get_rate_limiter().take(player, bucket, capacity=capacity, period=60)
            if decision.allowed:
                return view(*args, **kwargs)

            logger.warning(f"Throttled player {player} on {request.endpoint}")
            response = jsonify({
                'success': False,
                'error': 'Too many bets, slow down',
                'retryAfter': decision.retry_after,
            })
            response.status_code = 429
            response.headers['Retry-After'] = str(decision.retry_after)
            return response

        return throttled
    return decorator
