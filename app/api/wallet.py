"""
Wallet API.

Company wallet (deposits, creator payments, sales and commissions) and the
creator balance (transactions, Pix key, withdrawals). Amounts are integer
cents.
"""
from flask import Blueprint, request, jsonify, g

from ..models import SalesTracking, CreatorCommission, User
from ..middleware.auth import require_role, require_company
from ..services.wallet_service import wallet_service, PAYMENT_TYPES
from ..utils.errors import bad_request, not_found, ErrorCode

wallet_bp = Blueprint('wallet', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _amount(data, key='amount'):
    value = data.get(key)
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ==================== Company wallet ====================

@wallet_bp.route('/wallet', methods=['GET'])
@require_company()
def get_company_wallet():
    wallet = wallet_service.get_or_create_company_wallet(g.company.id)
    return jsonify(wallet.to_dict())


@wallet_bp.route('/wallet/transactions', methods=['GET'])
@require_company()
def company_transactions():
    limit = request.args.get('limit', 50, type=int)
    transactions = wallet_service.get_company_transactions(g.company.id, limit=limit)
    return jsonify([t.to_dict() for t in transactions])


@wallet_bp.route('/wallet/deposit', methods=['POST'])
@require_company(manage=True)
def deposit():
    data = _body()
    amount = _amount(data)
    if amount is None:
        return bad_request('amount (in cents) is required', ErrorCode.MISSING_FIELD)
    transaction = wallet_service.deposit(g.company.id, amount, data.get('description'))
    return jsonify(transaction.to_dict()), 201


@wallet_bp.route('/wallet/pay', methods=['POST'])
@require_company(manage=True)
def pay_creator():
    """
    Pay a creator from the company wallet.

    Request body:
        creatorId: int (required)
        amount: int cents (required)
        type: payment_fixed | payment_variable | commission | bonus
        description, campaignId: optional
    """
    data = _body()
    amount = _amount(data)
    creator_id = data.get('creatorId')
    if amount is None or not creator_id:
        return bad_request('creatorId and amount are required', ErrorCode.MISSING_FIELD)
    payment_type = data.get('type') or 'payment_fixed'
    if payment_type not in PAYMENT_TYPES:
        return bad_request(f'Invalid payment type: {payment_type}', ErrorCode.INVALID_FIELD)
    creator = User.query.get(creator_id)
    if not creator or creator.role != 'creator':
        return not_found('Creator not found', ErrorCode.USER_NOT_FOUND)

    result = wallet_service.pay_creator(
        g.company.id, creator.id, amount,
        type=payment_type,
        description=data.get('description') or '',
        campaign_id=data.get('campaignId'),
    )
    return jsonify({
        'company_transaction': result['company_transaction'].to_dict(),
        'creator_transaction': result['creator_transaction'].to_dict(),
    }), 201


# ==================== Sales & commissions ====================

@wallet_bp.route('/sales', methods=['GET'])
@require_company()
def list_sales():
    sales = SalesTracking.query.filter_by(company_id=g.company.id) \
        .order_by(SalesTracking.created_at.desc()).limit(request.args.get('limit', 100, type=int)).all()
    return jsonify([s.to_dict() for s in sales])


@wallet_bp.route('/sales', methods=['POST'])
@require_company(write=True)
def record_sale():
    data = _body()
    order_value = _amount(data, 'orderValue')
    creator_id = data.get('creatorId')
    if order_value is None or not creator_id or not data.get('orderId'):
        return bad_request('creatorId, orderId and orderValue are required', ErrorCode.MISSING_FIELD)
    result = wallet_service.create_sale_with_commission(
        g.company.id, int(creator_id), data['orderId'], order_value,
        commission_rate_bps=_amount(data, 'commissionRateBps') or 0,
        commission=_amount(data, 'commission'),
        campaign_id=data.get('campaignId'),
        coupon_code=data.get('couponCode'),
        platform=data.get('platform') or 'manual',
    )
    return jsonify({
        'sale': result['sale'].to_dict(),
        'commission': result['commission'].to_dict() if result['commission'] else None,
    }), 201


@wallet_bp.route('/commissions', methods=['GET'])
@require_company()
def list_commissions():
    query = CreatorCommission.query.filter_by(company_id=g.company.id)
    if request.args.get('status'):
        query = query.filter_by(status=request.args['status'])
    return jsonify([c.to_dict() for c in query.order_by(CreatorCommission.created_at.desc()).all()])


@wallet_bp.route('/commissions/<int:commission_id>/approve', methods=['POST'])
@require_company(manage=True)
def approve_commission(commission_id):
    return jsonify(wallet_service.approve_commission(g.company.id, commission_id).to_dict())


@wallet_bp.route('/commissions/<int:commission_id>/reject', methods=['POST'])
@require_company(manage=True)
def reject_commission(commission_id):
    return jsonify(wallet_service.reject_commission(g.company.id, commission_id).to_dict())


# ==================== Creator balance ====================

@wallet_bp.route('/creator/balance', methods=['GET'])
@require_role('creator')
def creator_balance():
    return jsonify(wallet_service.get_or_create_creator_balance(g.user.id).to_dict())


@wallet_bp.route('/creator/transactions', methods=['GET'])
@require_role('creator')
def creator_transactions():
    limit = request.args.get('limit', 50, type=int)
    return jsonify([t.to_dict() for t in wallet_service.get_creator_transactions(g.user.id, limit=limit)])


@wallet_bp.route('/creator/pix-key', methods=['PUT'])
@require_role('creator')
def update_pix_key():
    data = _body()
    balance = wallet_service.update_pix_key(g.user.id, data.get('pixKey'), data.get('pixKeyType'))
    return jsonify(balance.to_dict())


@wallet_bp.route('/creator/withdraw', methods=['POST'])
@require_role('creator')
def withdraw():
    amount = _amount(_body())
    if amount is None:
        return bad_request('amount (in cents) is required', ErrorCode.MISSING_FIELD)
    return jsonify(wallet_service.request_withdrawal(g.user.id, amount).to_dict()), 201


@wallet_bp.route('/creator/commissions', methods=['GET'])
@require_role('creator')
def my_commissions():
    commissions = CreatorCommission.query.filter_by(creator_id=g.user.id) \
        .order_by(CreatorCommission.created_at.desc()).all()
    return jsonify([c.to_dict() for c in commissions])
