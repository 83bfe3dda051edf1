"""
Meta Partnership Ads API.

Company endpoints manage creator ad partners and one-time auth links.
The creator-auth endpoints are what a creator hits after opening a link.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..middleware.auth import require_auth, require_role, require_company
from ..services.meta_ads_service import MetaAdsService
from ..utils.errors import bad_request, ErrorCode

meta_marketing_bp = Blueprint('meta_marketing', __name__)


def _body():
    return request.get_json(silent=True) or {}


# ==================== Partners ====================

@meta_marketing_bp.route('/creator-partners', methods=['GET'])
@require_company()
def list_partners():
    service = MetaAdsService(g.company.id)
    partners = service.list_partners(request.args.get('status'))
    return jsonify({
        'partners': [p.to_dict() for p in partners],
        'summary': service.partner_summary(),
    })


@meta_marketing_bp.route('/creator-partners', methods=['POST'])
@require_company(write=True)
def add_partner():
    partner = MetaAdsService(g.company.id).add_partner(_body())
    return jsonify(partner.to_dict()), 201


@meta_marketing_bp.route('/creator-partners/<int:partner_id>', methods=['PATCH'])
@require_company(write=True)
def update_partner(partner_id):
    partner = MetaAdsService(g.company.id).update_partner(partner_id, _body())
    return jsonify(partner.to_dict())


@meta_marketing_bp.route('/creator-partners/<int:partner_id>', methods=['DELETE'])
@require_company(write=True)
def delete_partner(partner_id):
    MetaAdsService(g.company.id).delete_partner(partner_id)
    return jsonify({'success': True})


# ==================== Auth links ====================

@meta_marketing_bp.route('/creator-auth-link', methods=['POST'])
@require_company(write=True)
def create_auth_link():
    link = MetaAdsService(g.company.id).create_auth_link(_body().get('label'))
    return jsonify(link.to_dict(base_url=current_app.config.get('APP_URL'))), 201


@meta_marketing_bp.route('/creator-auth-links', methods=['GET'])
@require_company()
def list_auth_links():
    base_url = current_app.config.get('APP_URL')
    links = MetaAdsService(g.company.id).list_auth_links()
    return jsonify([link.to_dict(base_url=base_url) for link in links])


@meta_marketing_bp.route('/creator-auth/<token>', methods=['GET'])
@require_auth
def get_auth_link(token):
    link = MetaAdsService.get_auth_link(token)
    return jsonify({
        'company': {'id': link.company.id, 'name': link.company.name},
        'label': link.label,
        'is_used': link.is_used,
        'is_expired': link.is_expired,
        'expires_at': link.expires_at.isoformat(),
    })


@meta_marketing_bp.route('/creator-auth/<token>', methods=['POST'])
@require_role('creator')
def consume_auth_link(token):
    partner = MetaAdsService.consume_auth_link(token, g.user)
    return jsonify(partner.to_dict()), 201


# ==================== Graph API ====================

@meta_marketing_bp.route('/partnership-request', methods=['POST'])
@require_company(write=True)
def request_partnership():
    partner_id = _body().get('partnerId')
    if not partner_id:
        return bad_request('partnerId is required', ErrorCode.MISSING_FIELD)
    result = MetaAdsService(g.company.id).request_partnership(int(partner_id))
    return jsonify({
        'partner': result['partner'].to_dict(),
        'requestId': result['request_id'],
    })


@meta_marketing_bp.route('/partnership-status', methods=['GET'])
@require_company()
def partnership_status():
    return jsonify(MetaAdsService(g.company.id).sync_partnership_status())


@meta_marketing_bp.route('/dashboard', methods=['GET'])
@require_company()
def dashboard():
    return jsonify(MetaAdsService(g.company.id).dashboard())
