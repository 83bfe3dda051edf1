"""
Gamification API.

Leaderboards, creator point summaries, metric ingestion, manual
adjustments, spike review and reward entitlements.
"""
from flask import Blueprint, request, jsonify, g

from ..models import RewardEntitlement, Company
from ..middleware.auth import require_role, require_company
from ..services.points_service import PointsService, LEADERBOARD_RANGES
from ..services.reward_service import RewardService
from ..services.campaign_service import campaign_service
from ..utils.errors import bad_request, not_found, ErrorCode

gamification_bp = Blueprint('gamification', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _int_field(data, key):
    value = data.get(key)
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ==================== Points ====================

@gamification_bp.route('/leaderboard', methods=['GET'])
@require_company()
def leaderboard():
    """
    Brand leaderboard.

    Query params:
        range: week | month | all (default all)
        campaign_id: restrict to one campaign
        limit: rows (default 10)
    """
    range_ = request.args.get('range', 'all')
    if range_ not in LEADERBOARD_RANGES:
        return bad_request(f'Invalid range: {range_}', ErrorCode.INVALID_FIELD)
    rows = PointsService(g.company.id).get_leaderboard(
        range_,
        campaign_id=request.args.get('campaign_id', type=int),
        limit=request.args.get('limit', 10, type=int),
    )
    return jsonify({'range': range_, 'leaderboard': rows})


@gamification_bp.route('/creators/<int:creator_id>/points', methods=['GET'])
@require_company()
def creator_points(creator_id):
    return jsonify(PointsService(g.company.id).get_creator_points_summary(creator_id))


@gamification_bp.route('/me/points', methods=['GET'])
@require_role('creator')
def my_points():
    company_id = request.args.get('companyId', type=int)
    if not company_id:
        return bad_request('companyId is required', ErrorCode.MISSING_FIELD)
    if not Company.query.get(company_id):
        return not_found('Company not found', ErrorCode.COMPANY_NOT_FOUND)
    return jsonify(PointsService(company_id).get_creator_points_summary(g.user.id))


@gamification_bp.route('/metrics', methods=['POST'])
@require_company(write=True)
def ingest_metrics():
    """
    Post counters for a creator's post; points are awarded for the growth
    since the previous update.

    Request body:
        campaignId, creatorId, postId (required)
        views, likes, comments (cumulative counters)
        platform (default instagram)
    """
    data = _body()
    campaign_id = _int_field(data, 'campaignId')
    creator_id = _int_field(data, 'creatorId')
    post_id = data.get('postId')
    if not campaign_id or not creator_id or not post_id:
        return bad_request('campaignId, creatorId and postId are required', ErrorCode.MISSING_FIELD)
    campaign_service.get_company_campaign(g.company.id, campaign_id)

    result = PointsService(g.company.id).process_metric_delta(
        campaign_id, creator_id, str(post_id),
        views=data.get('views', 0),
        likes=data.get('likes', 0),
        comments=data.get('comments', 0),
        platform=data.get('platform') or 'instagram',
    )
    result['snapshot'] = result['snapshot'].to_dict()
    return jsonify(result)


@gamification_bp.route('/adjustments', methods=['POST'])
@require_company(manage=True)
def manual_adjustment():
    data = _body()
    creator_id = _int_field(data, 'creatorId')
    delta = _int_field(data, 'delta')
    if not creator_id or not delta:
        return bad_request('creatorId and a nonzero delta are required', ErrorCode.MISSING_FIELD)
    entry = PointsService(g.company.id).manual_adjustment(creator_id, delta, data.get('notes') or '', g.user.id)
    return jsonify(entry.to_dict()), 201


@gamification_bp.route('/flagged', methods=['GET'])
@require_company()
def flagged_snapshots():
    snapshots = PointsService(g.company.id).get_flagged_snapshots(request.args.get('campaign_id', type=int))
    return jsonify([s.to_dict() for s in snapshots])


@gamification_bp.route('/flagged/<int:snapshot_id>/clear', methods=['POST'])
@require_company(write=True)
def clear_flag(snapshot_id):
    snapshot = PointsService(g.company.id).clear_snapshot_flag(snapshot_id)
    if not snapshot:
        return not_found('Snapshot not found')
    return jsonify(snapshot.to_dict())


# ==================== Rewards ====================

@gamification_bp.route('/rewards', methods=['GET'])
@require_company()
def list_rewards():
    entitlements = RewardService(g.company.id).list_entitlements(
        status=request.args.get('status'),
        campaign_id=request.args.get('campaign_id', type=int),
        creator_id=request.args.get('creator_id', type=int),
    )
    return jsonify([e.to_dict() for e in entitlements])


@gamification_bp.route('/rewards/<int:entitlement_id>/approve', methods=['POST'])
@require_company(write=True)
def approve_reward(entitlement_id):
    return jsonify(RewardService(g.company.id).approve(entitlement_id).to_dict())


@gamification_bp.route('/rewards/<int:entitlement_id>/reject', methods=['POST'])
@require_company(write=True)
def reject_reward(entitlement_id):
    entitlement = RewardService(g.company.id).reject(entitlement_id, _body().get('reason'))
    return jsonify(entitlement.to_dict())


@gamification_bp.route('/rewards/bulk-approve', methods=['POST'])
@require_company(write=True)
def bulk_approve_rewards():
    ids = _body().get('ids')
    if not isinstance(ids, list) or not ids:
        return bad_request('ids must be a non-empty list', ErrorCode.INVALID_FIELD)
    return jsonify({'approved': RewardService(g.company.id).bulk_approve(ids)})


@gamification_bp.route('/rewards/<int:entitlement_id>/execute', methods=['POST'])
@require_company(manage=True)
def execute_reward(entitlement_id):
    entitlement = RewardService(g.company.id).execute(entitlement_id, _body().get('tracking_code'))
    return jsonify(entitlement.to_dict())


@gamification_bp.route('/me/rewards', methods=['GET'])
@require_role('creator')
def my_rewards():
    entitlements = RewardEntitlement.query.filter_by(creator_id=g.user.id) \
        .order_by(RewardEntitlement.created_at.desc()).all()
    return jsonify([e.to_dict() for e in entitlements])
