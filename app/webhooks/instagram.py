"""
Instagram messaging webhook.
Handles the Meta subscription handshake and incoming DM deliveries.
"""
from flask import Blueprint, request, jsonify, current_app

from . import require_meta_signature
from ..services.instagram_service import handle_instagram_webhook

instagram_webhook_bp = Blueprint('instagram_webhook', __name__)


@instagram_webhook_bp.route('/instagram', methods=['GET'])
def verify_subscription():
    """Echo hub.challenge when hub.verify_token matches."""
    mode = request.args.get('hub.mode')
    token = request.args.get('hub.verify_token')
    expected = current_app.config.get('INSTAGRAM_WEBHOOK_VERIFY_TOKEN')
    if mode == 'subscribe' and expected and token == expected:
        return request.args.get('hub.challenge', ''), 200
    return jsonify({'error': 'Verification failed'}), 403


@instagram_webhook_bp.route('/instagram', methods=['POST'])
@require_meta_signature
def receive_messages():
    payload = request.get_json(silent=True) or {}
    if payload.get('object') not in ('instagram', 'page'):
        return jsonify({'received': True, 'stored': 0})

    stored = handle_instagram_webhook(payload)
    current_app.logger.info(f"Instagram webhook stored {stored} message(s)")
    return jsonify({'received': True, 'stored': stored})
