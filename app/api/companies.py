"""
Companies API.

Brand accounts, staff management, staff invites and the active company the
dashboard is scoped to.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_company
from ..services.company_service import company_service
from ..services.enrichment_service import enrichment_service
from ..utils.errors import bad_request, ErrorCode

companies_bp = Blueprint('companies', __name__)


def _body():
    return request.get_json(silent=True) or {}


# ==================== Companies ====================

@companies_bp.route('/companies', methods=['GET'])
@require_auth
def list_my_companies():
    return jsonify({'companies': company_service.list_user_companies(g.user.id)})


@companies_bp.route('/companies', methods=['POST'])
@require_auth
def create_company():
    company = company_service.create_company(g.user, _body())
    enrichment_service.refresh_score(company)
    return jsonify(company.to_dict(include_enrichment=True)), 201


@companies_bp.route('/companies/public', methods=['GET'])
def list_public_companies():
    companies = company_service.list_public(
        category=request.args.get('category'),
        featured=request.args.get('featured') == 'true',
    )
    return jsonify({'companies': [c.to_dict() for c in companies]})


@companies_bp.route('/companies/slug/<slug>', methods=['GET'])
def get_company_by_slug(slug):
    return jsonify(company_service.get_by_slug(slug).to_dict())


@companies_bp.route('/companies/<int:company_id>', methods=['GET'])
@require_auth
def get_company(company_id):
    return jsonify(company_service.get_company(company_id).to_dict())


@companies_bp.route('/company', methods=['GET'])
@require_company()
def get_active_company_details():
    return jsonify(g.company.to_dict(include_enrichment=True))


@companies_bp.route('/company', methods=['PATCH'])
@require_company(manage=True)
def update_company():
    company = company_service.update_company(g.company, _body())
    enrichment_service.refresh_score(company)
    return jsonify(company.to_dict(include_enrichment=True))


# ==================== Active company ====================

@companies_bp.route('/active-company', methods=['GET'])
@require_auth
def get_active_company():
    """The company the user's dashboard is scoped to, with the user's role in it."""
    companies = company_service.list_user_companies(g.user.id)
    active = next((c for c in companies if c['company']['id'] == g.user.active_company_id), None)
    if active is None and companies:
        active = companies[0]
    return jsonify({
        'activeCompany': active['company'] if active else None,
        'role': active['role'] if active else None,
        'companies': companies,
    })


@companies_bp.route('/active-company', methods=['POST'])
@require_auth
def set_active_company():
    company_id = _body().get('companyId')
    if not company_id:
        return bad_request('companyId is required', ErrorCode.MISSING_FIELD)
    company = company_service.set_active_company(g.user, int(company_id))
    return jsonify({'success': True, 'activeCompany': company.to_dict()})


# ==================== Staff ====================

@companies_bp.route('/company/members', methods=['GET'])
@require_company()
def list_members():
    members = company_service.list_members(g.company.id)
    return jsonify({'members': [m.to_dict() for m in members]})


@companies_bp.route('/company/members/<int:member_id>', methods=['PATCH'])
@require_company(manage=True)
def update_member(member_id):
    member = company_service.update_member_role(g.company.id, member_id, _body().get('role'))
    return jsonify(member.to_dict())


@companies_bp.route('/company/members/<int:member_id>', methods=['DELETE'])
@require_company(manage=True)
def remove_member(member_id):
    company_service.remove_member(g.company.id, member_id)
    return jsonify({'success': True})


@companies_bp.route('/company/staff-invites', methods=['GET'])
@require_company(manage=True)
def list_staff_invites():
    invites = company_service.list_staff_invites(g.company.id)
    return jsonify({'invites': [i.to_dict() for i in invites]})


@companies_bp.route('/company/staff-invites', methods=['POST'])
@require_company(manage=True)
def invite_staff():
    data = _body()
    invite = company_service.invite_staff(g.company.id, data.get('email'), data.get('role') or 'member', g.user)
    return jsonify(invite.to_dict()), 201


@companies_bp.route('/company/staff-invites/<int:invite_id>', methods=['DELETE'])
@require_company(manage=True)
def cancel_staff_invite(invite_id):
    company_service.cancel_staff_invite(g.company.id, invite_id)
    return jsonify({'success': True})


@companies_bp.route('/staff-invites/<token>', methods=['GET'])
def get_staff_invite(token):
    invite = company_service.get_staff_invite(token)
    data = invite.to_dict()
    data['company'] = invite.company.to_dict() if invite.company else None
    return jsonify(data)


@companies_bp.route('/staff-invites/<token>/accept', methods=['POST'])
@require_auth
def accept_staff_invite(token):
    member = company_service.accept_staff_invite(token, g.user)
    return jsonify({'success': True, 'member': member.to_dict()})
