"""
User profile API.

GET/PATCH /api/user for the signed-in account, plus public creator
profiles at /api/users/<id>.
"""
from flask import Blueprint, request, jsonify, g

from ..models import User
from ..middleware.auth import require_auth
from ..services.user_service import update_profile
from ..services.community_service import CommunityService
from ..utils.errors import not_found, bad_request, ErrorCode

users_bp = Blueprint('users', __name__)


@users_bp.route('/user', methods=['GET'])
@require_auth
def get_user():
    return jsonify(g.user.to_dict(include_private=True))


@users_bp.route('/user', methods=['PATCH'])
@require_auth
def patch_user():
    """
    Update the signed-in user's profile.

    `name` is required on every update; any invalid field rejects the whole
    request with 400 and nothing is saved.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return bad_request('JSON body required', ErrorCode.INVALID_REQUEST)
    user = update_profile(g.user, data)
    return jsonify(user.to_dict(include_private=True))


@users_bp.route('/users/<int:user_id>', methods=['GET'])
@require_auth
def get_public_profile(user_id):
    user = User.query.get(user_id)
    if not user or user.is_banned:
        return not_found('User not found', ErrorCode.USER_NOT_FOUND)
    data = user.to_dict()
    if user.role == 'creator':
        data['communities'] = [
            m.to_dict(include_company=True) for m in CommunityService.memberships_for_creator(user.id)
        ]
    return jsonify(data)
