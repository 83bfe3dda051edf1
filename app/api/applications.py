"""
Applications API.

Creators list their applications and submit deliverables; brand staff
accept/reject, move the workflow, track seeding and review deliverables.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_role, company_access
from ..services.campaign_service import campaign_service
from ..utils.errors import bad_request, forbidden, ErrorCode

applications_bp = Blueprint('applications', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _staff_application(application_id):
    application = campaign_service.get_application(application_id)
    if not company_access(g.user, application.campaign.company_id, write=True):
        return None
    return application


@applications_bp.route('', methods=['GET'])
@require_role('creator')
def list_my_applications():
    applications = campaign_service.list_creator_applications(g.user.id, request.args.get('status'))
    return jsonify([a.to_dict(include_campaign=True) for a in applications])


@applications_bp.route('/active', methods=['GET'])
@require_role('creator')
def list_active_applications():
    """Accepted applications: the campaigns the creator is working on."""
    applications = campaign_service.list_creator_applications(g.user.id, 'accepted')
    return jsonify([a.to_dict(include_campaign=True) for a in applications])


@applications_bp.route('/<int:application_id>', methods=['GET'])
@require_auth
def get_application(application_id):
    application = campaign_service.get_application(application_id)
    if application.creator_id != g.user.id and not company_access(g.user, application.campaign.company_id):
        return forbidden()
    data = application.to_dict(include_campaign=True, include_creator=True)
    data['deliverables'] = [d.to_dict() for d in application.deliverables]
    return jsonify(data)


@applications_bp.route('/<int:application_id>/status', methods=['PATCH'])
@require_auth
def update_status(application_id):
    application = _staff_application(application_id)
    if not application:
        return forbidden('Not a member of this company')
    status = _body().get('status')
    if not status:
        return bad_request('status is required', ErrorCode.MISSING_FIELD)
    application = campaign_service.update_application_status(application, status)
    return jsonify(application.to_dict(include_creator=True))


@applications_bp.route('/<int:application_id>/workflow', methods=['PATCH'])
@require_auth
def update_workflow(application_id):
    application = _staff_application(application_id)
    if not application:
        return forbidden('Not a member of this company')
    application = campaign_service.update_workflow_status(application, _body().get('creator_workflow_status'))
    return jsonify(application.to_dict(include_creator=True))


@applications_bp.route('/<int:application_id>/seeding', methods=['PATCH'])
@require_auth
def update_seeding(application_id):
    application = _staff_application(application_id)
    if not application:
        return forbidden('Not a member of this company')
    data = _body()
    application = campaign_service.update_seeding(application, data.get('seeding_status'), data.get('tracking_code'))
    return jsonify(application.to_dict(include_creator=True))


@applications_bp.route('/<int:application_id>/deliverables', methods=['POST'])
@require_role('creator')
def submit_deliverable(application_id):
    application = campaign_service.get_application(application_id)
    deliverable = campaign_service.submit_deliverable(application, g.user, _body())
    return jsonify(deliverable.to_dict()), 201


@applications_bp.route('/<int:application_id>/deliverables/<int:deliverable_id>/review', methods=['POST'])
@require_auth
def review_deliverable(application_id, deliverable_id):
    application = _staff_application(application_id)
    if not application:
        return forbidden('Not a member of this company')
    data = _body()
    if 'approved' not in data:
        return bad_request('approved is required', ErrorCode.MISSING_FIELD)
    deliverable = campaign_service.review_deliverable(
        application, deliverable_id, bool(data['approved']), data.get('feedback'),
    )
    return jsonify(deliverable.to_dict())
