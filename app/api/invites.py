"""
Campaign invites API (creator side).
"""
from flask import Blueprint, jsonify, g

from ..middleware.auth import require_role
from ..services.campaign_service import campaign_service

invites_bp = Blueprint('invites', __name__)


@invites_bp.route('', methods=['GET'])
@require_role('creator')
def list_invites():
    return jsonify([i.to_dict() for i in campaign_service.list_invites(g.user.id)])


@invites_bp.route('/pending', methods=['GET'])
@require_role('creator')
def list_pending_invites():
    return jsonify([i.to_dict() for i in campaign_service.pending_invites(g.user.id)])


@invites_bp.route('/count', methods=['GET'])
@require_role('creator')
def pending_invite_count():
    return jsonify({'count': campaign_service.pending_invite_count(g.user.id)})


@invites_bp.route('/<int:invite_id>/accept', methods=['POST'])
@require_role('creator')
def accept_invite(invite_id):
    """Accept an invite; the creator joins the campaign with an accepted application."""
    result = campaign_service.accept_invite(invite_id, g.user)
    return jsonify({
        'invite': result['invite'].to_dict(),
        'application': result['application'].to_dict(include_campaign=True),
    })


@invites_bp.route('/<int:invite_id>/decline', methods=['POST'])
@require_role('creator')
def decline_invite(invite_id):
    invite = campaign_service.decline_invite(invite_id, g.user)
    return jsonify(invite.to_dict())
