"""
Webhook handlers for CreatorConnect.
Processes Meta (Instagram messaging) webhook deliveries.
"""
import hmac
import hashlib
from functools import wraps
from flask import request, jsonify, current_app


def verify_meta_signature(data: bytes, signature_header: str, secret: str) -> bool:
    """
    Verify a Meta webhook X-Hub-Signature-256 header.

    Meta signs the raw body with HMAC-SHA256 using the app secret and sends
    it as `sha256=<hex digest>`.

    Args:
        data: Raw request body bytes
        signature_header: The X-Hub-Signature-256 header value
        secret: The Meta app secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not secret:
        current_app.logger.warning('No Meta app secret configured for verification')
        return False

    if not signature_header or not signature_header.startswith('sha256='):
        current_app.logger.warning('No signature header in webhook request')
        return False

    expected = hmac.new(secret.encode('utf-8'), data, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[len('sha256='):])


def require_meta_signature(f):
    """
    Decorator rejecting webhook deliveries whose signature does not match
    META_APP_SECRET.

    Usage:
        @bp.route('/instagram', methods=['POST'])
        @require_meta_signature
        def handle_instagram(): ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        signature = request.headers.get('X-Hub-Signature-256', '')
        secret = current_app.config.get('META_APP_SECRET')
        if not verify_meta_signature(request.get_data(), signature, secret):
            current_app.logger.warning('Invalid Meta webhook signature')
            return jsonify({'error': 'Invalid signature'}), 401
        return f(*args, **kwargs)

    return decorated_function


from .instagram import instagram_webhook_bp

__all__ = [
    'instagram_webhook_bp',
    'verify_meta_signature',
    'require_meta_signature',
]
