"""
Brand community API.

Company side under /api/community (members, tiers, invites), creator side
under /api/creator, and the public invite landing at /api/join/<token>.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_role, require_company
from ..services.community_service import CommunityService
from ..utils.errors import bad_request, ErrorCode

community_bp = Blueprint('community', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _service():
    return CommunityService(g.company.id)


# ==================== Members ====================

@community_bp.route('/community/members', methods=['GET'])
@require_company()
def list_members():
    members = _service().list_members(
        status=request.args.get('status'),
        tier_id=request.args.get('tier_id', type=int),
    )
    return jsonify([m.to_dict(include_creator=True) for m in members])


@community_bp.route('/community/members', methods=['POST'])
@require_company(write=True)
def add_member():
    creator_id = _body().get('creatorId')
    if not creator_id:
        return bad_request('creatorId is required', ErrorCode.MISSING_FIELD)
    membership = _service().add_member(int(creator_id), source='manual')
    return jsonify(membership.to_dict(include_creator=True)), 201


@community_bp.route('/community/members/<int:creator_id>', methods=['PATCH'])
@require_company(write=True)
def update_member(creator_id):
    membership = _service().update_membership(creator_id, _body())
    return jsonify(membership.to_dict(include_creator=True))


@community_bp.route('/community/members/<int:creator_id>', methods=['DELETE'])
@require_company(write=True)
def remove_member(creator_id):
    membership = _service().remove_member(creator_id)
    return jsonify(membership.to_dict())


@community_bp.route('/community/stats', methods=['GET'])
@require_company()
def community_stats():
    return jsonify(_service().get_stats())


# ==================== Tiers ====================

@community_bp.route('/community/tiers', methods=['GET'])
@require_company()
def list_tiers():
    return jsonify([t.to_dict() for t in _service().list_tiers()])


@community_bp.route('/community/tiers', methods=['POST'])
@require_company(manage=True)
def create_tier():
    tier = _service().create_tier(_body())
    return jsonify(tier.to_dict()), 201


@community_bp.route('/community/tiers/defaults', methods=['POST'])
@require_company(manage=True)
def create_default_tiers():
    return jsonify([t.to_dict() for t in _service().ensure_default_tiers()])


@community_bp.route('/community/tiers/<int:tier_id>', methods=['PATCH'])
@require_company(manage=True)
def update_tier(tier_id):
    tier = _service().update_tier(tier_id, _body())
    return jsonify(tier.to_dict())


@community_bp.route('/community/tiers/<int:tier_id>', methods=['DELETE'])
@require_company(manage=True)
def delete_tier(tier_id):
    _service().delete_tier(tier_id)
    return jsonify({'success': True})


@community_bp.route('/community/tiers/recalculate', methods=['POST'])
@require_company(manage=True)
def recalculate_tiers():
    return jsonify({'changed': _service().recalculate_tiers()})


# ==================== Invites ====================

@community_bp.route('/community/invites', methods=['GET'])
@require_company()
def list_invites():
    return jsonify([i.to_dict() for i in _service().list_invites()])


@community_bp.route('/community/invites', methods=['POST'])
@require_company(write=True)
def create_invite():
    data = _body()
    invite = _service().create_invite(
        creator_id=data.get('creatorId'),
        email=data.get('email'),
        instagram_handle=data.get('instagramHandle'),
    )
    return jsonify(invite.to_dict()), 201


@community_bp.route('/community/invites/<int:invite_id>', methods=['DELETE'])
@require_company(write=True)
def cancel_invite(invite_id):
    invite = _service().cancel_invite(invite_id)
    return jsonify(invite.to_dict())


# ==================== Creator side ====================

@community_bp.route('/creator/communities', methods=['GET'])
@require_role('creator')
def my_communities():
    memberships = CommunityService.memberships_for_creator(g.user.id)
    return jsonify([m.to_dict(include_company=True) for m in memberships])


@community_bp.route('/creator/community-invites', methods=['GET'])
@require_role('creator')
def my_community_invites():
    return jsonify([i.to_dict() for i in CommunityService.pending_invites_for_creator(g.user.id)])


@community_bp.route('/join/<token>', methods=['GET'])
def open_invite(token):
    """Invite landing page data. Marks a sent invite as opened."""
    invite = CommunityService.open_invite(token)
    data = invite.to_dict()
    data['company'] = invite.company.to_dict() if invite.company else None
    return jsonify(data)


@community_bp.route('/join/<token>', methods=['POST'])
@require_auth
def accept_invite(token):
    membership = CommunityService.accept_invite(token, g.user)
    return jsonify({'success': True, 'membership': membership.to_dict(include_company=True)})
