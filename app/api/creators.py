"""
Creator discovery and analysis API.

Discovery search, favorites and saved search profiles are scoped to the
active company. Deep analysis is open to company staff and to the creator
it describes.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_company, company_access
from ..services.creator_analysis_service import CreatorAnalysisService
from ..services.discovery_service import DiscoveryService
from ..utils.errors import forbidden

creators_bp = Blueprint('creators', __name__)


def _can_view_analysis(creator_id: int) -> bool:
    if g.user.id == creator_id or g.user.role == 'admin':
        return True
    if g.user.role == 'creator':
        return False
    company_id = request.headers.get('X-Company-ID', type=int) or g.user.active_company_id
    return bool(company_id) and company_access(g.user, company_id)


@creators_bp.route('/creators/discovery-stats', methods=['GET'])
@require_company()
def discovery_stats():
    """
    Paginated creator search.

    Query params: page, limit, query, niche, minFollowers, maxFollowers,
    gender, ageRange, minEngagement, state, favoritesOnly, sortBy.
    """
    result = DiscoveryService(g.company.id).search_creators(
        request.args.to_dict(),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int),
    )
    return jsonify(result)


@creators_bp.route('/favorites', methods=['GET'])
@require_company()
def list_favorites():
    return jsonify(DiscoveryService(g.company.id).favorite_ids())


@creators_bp.route('/favorites/<int:creator_id>', methods=['POST'])
@require_company(write=True)
def add_favorite(creator_id):
    DiscoveryService(g.company.id).add_favorite(creator_id)
    return jsonify({'success': True}), 201


@creators_bp.route('/favorites/<int:creator_id>', methods=['DELETE'])
@require_company(write=True)
def remove_favorite(creator_id):
    removed = DiscoveryService(g.company.id).remove_favorite(creator_id)
    return jsonify({'success': removed})


@creators_bp.route('/discovery-profiles', methods=['GET'])
@require_company()
def list_profiles():
    return jsonify([p.to_dict() for p in DiscoveryService(g.company.id).list_profiles()])


@creators_bp.route('/discovery-profiles', methods=['POST'])
@require_company(write=True)
def save_profile():
    profile = DiscoveryService(g.company.id).save_profile(request.get_json(silent=True) or {})
    return jsonify(profile.to_dict()), 201


@creators_bp.route('/discovery-profiles/<int:profile_id>', methods=['DELETE'])
@require_company(write=True)
def delete_profile(profile_id):
    DiscoveryService(g.company.id).delete_profile(profile_id)
    return jsonify({'success': True})


@creators_bp.route('/creators/<int:creator_id>/deep-analysis', methods=['GET'])
@require_auth
def deep_analysis(creator_id):
    """
    Instagram profile, recent posts, engagement stats and top hashtags.

    Served from cache; the first request reads the Graph API.
    """
    if not _can_view_analysis(creator_id):
        return forbidden('Not allowed to view this creator analysis')
    return jsonify(CreatorAnalysisService().get_analysis(creator_id))


@creators_bp.route('/creators/<int:creator_id>/refresh-analysis', methods=['POST'])
@require_auth
def refresh_analysis(creator_id):
    """Body: {"platform": "instagram" | "both"}"""
    if not _can_view_analysis(creator_id):
        return forbidden('Not allowed to view this creator analysis')
    platform = (request.get_json(silent=True) or {}).get('platform') or 'instagram'
    analysis = CreatorAnalysisService().refresh_analysis(creator_id, platform)
    return jsonify({'success': True, 'analysis': analysis})


@creators_bp.route('/social/validate-instagram', methods=['POST'])
@require_auth
def validate_instagram():
    """
    Check an Instagram username.

    Returns {"exists": false, "username"} when Instagram does not expose the
    account, otherwise its public profile numbers.
    """
    username = (request.get_json(silent=True) or {}).get('username')
    return jsonify(CreatorAnalysisService().validate_instagram(username))
