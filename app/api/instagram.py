"""
Instagram DM inbox API for company staff.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_company
from ..services.instagram_service import InstagramInboxService
from ..utils.errors import bad_request, ErrorCode

instagram_bp = Blueprint('instagram', __name__)


@instagram_bp.route('/conversations', methods=['GET'])
@require_company()
def list_conversations():
    return jsonify(InstagramInboxService(g.company).list_conversations())


@instagram_bp.route('/conversations/<conversation_id>/messages', methods=['GET'])
@require_company()
def list_messages(conversation_id):
    messages = InstagramInboxService(g.company).list_messages(
        conversation_id, limit=request.args.get('limit', 100, type=int)
    )
    return jsonify([m.to_dict() for m in messages])


@instagram_bp.route('/conversations/<conversation_id>/read', methods=['POST'])
@require_company()
def mark_conversation_read(conversation_id):
    marked = InstagramInboxService(g.company).mark_conversation_read(conversation_id)
    return jsonify({'success': True, 'markedCount': marked})


@instagram_bp.route('/conversations/sync', methods=['POST'])
@require_company(write=True)
def sync_conversations():
    """
    Start a background pull of conversations from the Graph API.

    Progress is pushed to the requesting user as dm_sync_progress events.
    Returns 'already_syncing' when a sync is running for the company.
    """
    status = InstagramInboxService(g.company).start_sync(g.user.id)
    return jsonify({'status': status}), 202


@instagram_bp.route('/messages/mark-all-read', methods=['POST'])
@require_company()
def mark_all_read():
    return jsonify({'success': True, 'markedCount': InstagramInboxService(g.company).mark_all_read()})


@instagram_bp.route('/send', methods=['POST'])
@require_company(write=True)
def send_message():
    data = request.get_json(silent=True) or {}
    recipient_id = data.get('recipientId')
    text = (data.get('text') or '').strip()
    if not recipient_id:
        return bad_request('recipientId is required', ErrorCode.MISSING_FIELD)
    if not text:
        return bad_request('text is required', ErrorCode.MISSING_FIELD)

    message = InstagramInboxService(g.company).send_direct_message(
        str(recipient_id), text, conversation_id=data.get('conversationId')
    )
    return jsonify(message.to_dict()), 201


@instagram_bp.route('/unread-count', methods=['GET'])
@require_company()
def unread_count():
    return jsonify({'count': InstagramInboxService(g.company).unread_count()})
