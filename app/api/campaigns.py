"""
Campaigns API.

Brand side: create, edit, delete, invite creators, review applications,
prizes, points rules, leaderboard and closeout.
Creator side: browse, qualified matches and apply.
"""
from flask import Blueprint, request, jsonify, g

from ..models import CampaignInvite, Application
from ..middleware.auth import require_auth, require_role, require_company, company_access
from ..services.campaign_service import campaign_service
from ..services.matching_service import (
    get_qualified_campaigns_for_creator,
    get_qualified_creators_for_campaign,
    score_creator_for_campaign,
)
from ..services.points_service import PointsService, LEADERBOARD_RANGES
from ..services.reward_service import RewardService
from ..utils.errors import bad_request, forbidden, not_found, ErrorCode

campaigns_bp = Blueprint('campaigns', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _managed_campaign(campaign_id):
    """Campaign the signed-in user may edit, or None."""
    campaign = campaign_service.get_campaign(campaign_id)
    if not company_access(g.user, campaign.company_id, write=True):
        return None
    return campaign


def _can_view(campaign) -> bool:
    if campaign.visibility == 'public' or company_access(g.user, campaign.company_id):
        return True
    invited = CampaignInvite.query.filter_by(campaign_id=campaign.id, creator_id=g.user.id).first()
    applied = Application.query.filter_by(campaign_id=campaign.id, creator_id=g.user.id).first()
    return bool(invited or applied)


# ==================== Listing ====================

@campaigns_bp.route('/campaigns', methods=['GET'])
@require_auth
def list_open_campaigns():
    """Open public campaigns. Query params: search."""
    campaigns = campaign_service.list_campaigns(
        status='open', visibility='public', search=request.args.get('search'),
    )
    return jsonify([c.to_dict() for c in campaigns])


@campaigns_bp.route('/campaigns/qualified', methods=['GET'])
@require_role('creator')
def list_qualified_campaigns():
    """Open campaigns the creator qualifies for, with match score, best first."""
    results = []
    for campaign, score in get_qualified_campaigns_for_creator(g.user):
        data = campaign.to_dict()
        data['match'] = score
        results.append(data)
    return jsonify(results)


@campaigns_bp.route('/company/campaigns', methods=['GET'])
@require_company()
def list_company_campaigns():
    campaigns = campaign_service.list_campaigns(
        company_id=g.company.id,
        status=request.args.get('status'),
        search=request.args.get('search'),
    )
    results = []
    for campaign in campaigns:
        data = campaign.to_dict(include_company=False)
        data['applications_count'] = campaign.applications.count()
        data['pending_count'] = campaign.applications.filter_by(status='pending').count()
        results.append(data)
    return jsonify(results)


# ==================== CRUD ====================

@campaigns_bp.route('/campaigns', methods=['POST'])
@require_company(write=True)
def create_campaign():
    campaign = campaign_service.create_campaign(g.company.id, g.user.id, _body())
    return jsonify(campaign.to_dict()), 201


@campaigns_bp.route('/campaigns/<int:campaign_id>', methods=['GET'])
@require_auth
def get_campaign(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not _can_view(campaign):
        return not_found(f'Campaign with ID {campaign_id} not found', ErrorCode.CAMPAIGN_NOT_FOUND)
    data = campaign.to_dict()
    data['prizes'] = [p.to_dict() for p in campaign_service.list_prizes(campaign)]
    if g.user.role == 'creator':
        application = Application.query.filter_by(campaign_id=campaign.id, creator_id=g.user.id).first()
        data['my_application'] = application.to_dict() if application else None
    return jsonify(data)


@campaigns_bp.route('/campaigns/<int:campaign_id>', methods=['PATCH'])
@require_auth
def update_campaign(campaign_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    campaign = campaign_service.update_campaign(campaign, _body())
    return jsonify(campaign.to_dict())


@campaigns_bp.route('/campaigns/<int:campaign_id>', methods=['DELETE'])
@require_auth
def delete_campaign(campaign_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    campaign_service.delete_campaign(campaign)
    return jsonify({'success': True})


# ==================== Applications & invites ====================

@campaigns_bp.route('/campaigns/<int:campaign_id>/apply', methods=['POST'])
@require_role('creator')
def apply_to_campaign(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    application = campaign_service.apply(campaign, g.user, _body().get('message'))
    return jsonify(application.to_dict(include_campaign=True)), 201


@campaigns_bp.route('/campaigns/<int:campaign_id>/applications', methods=['GET'])
@require_auth
def list_campaign_applications(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not company_access(g.user, campaign.company_id):
        return forbidden('Not a member of this company')
    applications = campaign_service.list_campaign_applications(campaign, request.args.get('status'))
    return jsonify([a.to_dict(include_creator=True) for a in applications])


@campaigns_bp.route('/campaigns/<int:campaign_id>/invites', methods=['GET'])
@require_auth
def list_campaign_invites(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not company_access(g.user, campaign.company_id):
        return forbidden('Not a member of this company')
    return jsonify([i.to_dict() for i in campaign_service.list_campaign_invites(campaign)])


@campaigns_bp.route('/campaigns/<int:campaign_id>/invites', methods=['POST'])
@require_auth
def invite_creator(campaign_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    creator_id = _body().get('creatorId')
    if not creator_id:
        return bad_request('creatorId is required', ErrorCode.MISSING_FIELD)
    invite = campaign_service.invite_creator(campaign, int(creator_id))
    return jsonify(invite.to_dict()), 201


@campaigns_bp.route('/campaigns/<int:campaign_id>/qualified-creators', methods=['GET'])
@require_auth
def list_qualified_creators(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not company_access(g.user, campaign.company_id):
        return forbidden('Not a member of this company')
    results = []
    for creator in get_qualified_creators_for_campaign(campaign):
        data = creator.to_dict()
        data['match'] = score_creator_for_campaign(creator, campaign)
        results.append(data)
    results.sort(key=lambda item: item['match']['score'], reverse=True)
    return jsonify(results)


# ==================== Gamification ====================

@campaigns_bp.route('/campaigns/<int:campaign_id>/leaderboard', methods=['GET'])
@require_auth
def campaign_leaderboard(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not _can_view(campaign):
        return not_found(f'Campaign with ID {campaign_id} not found', ErrorCode.CAMPAIGN_NOT_FOUND)
    range_ = request.args.get('range', 'all')
    if range_ not in LEADERBOARD_RANGES:
        return bad_request(f'Invalid range: {range_}', ErrorCode.INVALID_FIELD)
    limit = request.args.get('limit', 10, type=int)
    leaderboard = PointsService(campaign.company_id).get_leaderboard(range_, campaign_id=campaign.id, limit=limit)
    return jsonify({'campaign_id': campaign.id, 'range': range_, 'leaderboard': leaderboard})


@campaigns_bp.route('/campaigns/<int:campaign_id>/prizes', methods=['GET'])
@require_auth
def list_prizes(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not _can_view(campaign):
        return not_found(f'Campaign with ID {campaign_id} not found', ErrorCode.CAMPAIGN_NOT_FOUND)
    return jsonify([p.to_dict() for p in campaign_service.list_prizes(campaign)])


@campaigns_bp.route('/campaigns/<int:campaign_id>/prizes', methods=['POST'])
@require_auth
def add_prize(campaign_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    prize = campaign_service.add_prize(campaign, _body())
    return jsonify(prize.to_dict()), 201


@campaigns_bp.route('/campaigns/<int:campaign_id>/prizes/<int:prize_id>', methods=['DELETE'])
@require_auth
def delete_prize(campaign_id, prize_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    campaign_service.delete_prize(campaign, prize_id)
    return jsonify({'success': True})


@campaigns_bp.route('/campaigns/<int:campaign_id>/points-rules', methods=['GET'])
@require_auth
def get_points_rules(campaign_id):
    campaign = campaign_service.get_campaign(campaign_id)
    if not company_access(g.user, campaign.company_id):
        return forbidden('Not a member of this company')
    rules = PointsService(campaign.company_id).get_effective_scoring_rules(campaign.id)
    return jsonify({'campaign_id': campaign.id, 'rules': rules})


@campaigns_bp.route('/campaigns/<int:campaign_id>/points-rules', methods=['PUT'])
@require_auth
def set_points_rules(campaign_id):
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    data = _body()
    if not isinstance(data.get('rules', {}), dict):
        return bad_request('rules must be an object', ErrorCode.INVALID_FIELD)
    row = PointsService(campaign.company_id).set_campaign_rules(
        campaign.id, data.get('rules') or {}, overrides_brand=data.get('overrides_brand', False),
    )
    return jsonify(row.to_dict())


@campaigns_bp.route('/campaigns/<int:campaign_id>/closeout', methods=['POST'])
@require_auth
def closeout_campaign(campaign_id):
    """Close the campaign and create ranking rewards for the top of the leaderboard."""
    campaign = _managed_campaign(campaign_id)
    if not campaign:
        return forbidden('Not a member of this company')
    result = RewardService(campaign.company_id).closeout_campaign(campaign.id)
    return jsonify({
        'campaign': result['campaign'].to_dict(),
        'entitlements': [e.to_dict() for e in result['entitlements']],
    })
