"""
Messaging API.

Brand <-> creator conversations. Creators see their own conversations;
company staff see every conversation of the active company.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_company, company_access
from ..services.messaging_service import messaging_service
from ..utils.errors import bad_request, forbidden, ErrorCode

messages_bp = Blueprint('messages', __name__)


def _body():
    return request.get_json(silent=True) or {}


@messages_bp.route('/conversations', methods=['GET'])
@require_auth
def list_conversations():
    """Creators get their own conversations; company staff get the active company inbox."""
    type_ = request.args.get('type')
    if g.user.role == 'creator':
        return jsonify(messaging_service.list_for_creator(g.user.id, type_))
    return _company_conversations(type_)


@require_company()
def _company_conversations(type_):
    return jsonify(messaging_service.list_for_company(g.company.id, g.user.id, type_))


@messages_bp.route('/conversations', methods=['POST'])
@require_auth
def start_conversation():
    """
    Open (or fetch) a conversation.

    Creators pass companyId; company staff pass creatorId and use their
    active company. campaignId with type 'campaign' scopes it to a campaign.
    """
    data = _body()
    type_ = data.get('type') or 'brand'
    if g.user.role == 'creator':
        company_id = data.get('companyId')
        if not company_id:
            return bad_request('companyId is required', ErrorCode.MISSING_FIELD)
        conversation = messaging_service.get_or_create_conversation(
            type_, g.user.id, int(company_id), data.get('campaignId'),
        )
        return jsonify(conversation.to_dict()), 201
    return _start_company_conversation(type_, data)


@require_company(write=True)
def _start_company_conversation(type_, data):
    creator_id = data.get('creatorId')
    if not creator_id:
        return bad_request('creatorId is required', ErrorCode.MISSING_FIELD)
    conversation = messaging_service.get_or_create_conversation(
        type_, int(creator_id), g.company.id, data.get('campaignId'),
    )
    return jsonify(conversation.to_dict()), 201


@messages_bp.route('/conversations/<int:conversation_id>', methods=['GET'])
@require_auth
def get_conversation(conversation_id):
    conversation = messaging_service.get_conversation(conversation_id, g.user)
    messages = messaging_service.list_messages(
        conversation,
        limit=request.args.get('limit', 50, type=int),
        offset=request.args.get('offset', 0, type=int),
    )
    messaging_service.mark_as_read(conversation.id, g.user.id)
    data = conversation.to_dict()
    data['messages'] = [m.to_dict() for m in messages]
    return jsonify(data)


@messages_bp.route('/conversations/<int:conversation_id>/messages', methods=['POST'])
@require_auth
def send_message(conversation_id):
    conversation = messaging_service.get_conversation(conversation_id, g.user)
    message = messaging_service.send_message(conversation, g.user, _body().get('body'))
    return jsonify(message.to_dict()), 201


@messages_bp.route('/conversations/<int:conversation_id>/read', methods=['POST'])
@require_auth
def mark_read(conversation_id):
    conversation = messaging_service.get_conversation(conversation_id, g.user)
    messaging_service.mark_as_read(conversation.id, g.user.id)
    return jsonify({'success': True})


@messages_bp.route('/conversations/<int:conversation_id>/status', methods=['PATCH'])
@require_auth
def set_status(conversation_id):
    conversation = messaging_service.get_conversation(conversation_id, g.user)
    if conversation.creator_id == g.user.id:
        return forbidden('Only company staff can change the conversation status')
    conversation = messaging_service.set_status(conversation, _body().get('status'))
    return jsonify(conversation.to_dict())


@messages_bp.route('/unread-count', methods=['GET'])
@require_auth
def unread_count():
    company_id = None
    if g.user.role != 'creator':
        company_id = request.headers.get('X-Company-ID', type=int) or g.user.active_company_id
        if not company_id or not company_access(g.user, company_id):
            return forbidden('Not a member of this company')
    return jsonify({'count': messaging_service.unread_count(g.user, company_id)})
