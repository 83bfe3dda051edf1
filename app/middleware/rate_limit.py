"""
API rate limiting with Flask-Limiter.

Limits are keyed by the authenticated user when a bearer token is present
and by client address otherwise. Redis is used as storage when REDIS_URL is
set; RATELIMIT_ENABLED switches the whole thing off.

Per-route limits:
    auth_limit()  login and registration (AUTH_RATE_LIMIT)
    cnpj_limit()  CNPJ registry lookups (CNPJ_RATE_LIMIT)
"""
import logging

from flask import current_app, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .auth import decode_token

logger = logging.getLogger(__name__)


def rate_limit_key() -> str:
    """`user:<id>` for a valid bearer token, the client address otherwise."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        try:
            payload = decode_token(auth_header[7:])
        except ValueError:
            payload = {}
        if payload.get('user_id'):
            return f"user:{payload['user_id']}"
    return get_remote_address()


limiter = Limiter(key_func=rate_limit_key)


def auth_limit():
    return limiter.limit(lambda: current_app.config['AUTH_RATE_LIMIT'], key_func=get_remote_address)


def cnpj_limit():
    return limiter.limit(lambda: current_app.config['CNPJ_RATE_LIMIT'], key_func=rate_limit_key)


def init_rate_limiter(app) -> None:
    """Attach the limiter to the app; 429s go through the app's error handler."""
    limiter.init_app(app)
    if app.config.get('RATELIMIT_ENABLED', True):
        logger.info('Rate limiting enabled (%s)', app.config['RATELIMIT_STORAGE_URI'].split('@')[-1])
    else:
        logger.info('Rate limiting disabled')
