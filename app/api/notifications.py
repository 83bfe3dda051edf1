"""
Notifications API.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..services.notification_service import notification_service
from ..utils.errors import not_found

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.route('', methods=['GET'])
@require_auth
def list_notifications():
    notifications = notification_service.list_for_user(
        g.user.id,
        unread_only=request.args.get('unread') == 'true',
        limit=request.args.get('limit', 50, type=int),
    )
    return jsonify([n.to_dict() for n in notifications])


@notifications_bp.route('/unread-count', methods=['GET'])
@require_auth
def unread_count():
    return jsonify({'count': notification_service.unread_count(g.user.id)})


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@require_auth
def mark_read(notification_id):
    if not notification_service.mark_read(g.user.id, notification_id):
        return not_found('Notification not found')
    return jsonify({'success': True})


@notifications_bp.route('/read-all', methods=['POST'])
@require_auth
def mark_all_read():
    return jsonify({'success': True, 'updated': notification_service.mark_all_read(g.user.id)})
