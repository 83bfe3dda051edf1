"""
Enrichment API.

CNPJ lookups (BrasilAPI with ReceitaWS fallback), CEP lookups (ViaCEP),
IBGE municipality lists and company enrichment.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth, require_company
from ..middleware.rate_limit import cnpj_limit
from ..services.enrichment_service import enrichment_service
from ..utils.brazil import STATES
from ..utils.errors import bad_request, ErrorCode

enrichment_bp = Blueprint('enrichment', __name__)


@enrichment_bp.route('/cnpj/<cnpj>', methods=['GET'])
@cnpj_limit()
@require_auth
def lookup_cnpj(cnpj):
    """
    Registry data for a CNPJ.

    Returns:
        {"success": true, "data": {razaoSocial, nomeFantasia, ...}}
    """
    data = enrichment_service.lookup_cnpj(cnpj)
    return jsonify({'success': True, 'data': data})


@enrichment_bp.route('/cep/<cep>', methods=['GET'])
def lookup_cep(cep):
    return jsonify({'success': True, 'data': enrichment_service.lookup_cep(cep)})


@enrichment_bp.route('/municipalities/<uf>', methods=['GET'])
def list_municipalities(uf):
    uf = uf.upper()
    if uf not in STATES:
        return bad_request(f'Invalid state: {uf}', ErrorCode.INVALID_FIELD)
    return jsonify(enrichment_service.list_municipalities(uf))


@enrichment_bp.route('/company', methods=['POST'])
@require_company(manage=True)
def enrich_active_company():
    """Refresh the active company's registry data. Body: {"force": bool}."""
    force = bool((request.get_json(silent=True) or {}).get('force'))
    if not g.company.cnpj:
        return bad_request('Company has no CNPJ', ErrorCode.INVALID_CNPJ)
    updated = enrichment_service.enrich_company_cnpj(g.company, force=force)
    return jsonify({
        'updated': updated,
        'company': g.company.to_dict(include_enrichment=True),
    })


@enrichment_bp.route('/company/score', methods=['GET'])
@require_company()
def company_score():
    return jsonify({'score': enrichment_service.refresh_score(g.company)})
