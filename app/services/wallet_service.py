"""
Wallet Service for CreatorConnect.

Company wallets are prepaid balances used to pay creators. Creator payouts
land in the creator's pending balance and are released to the available
balance later (scheduler), from where the creator can withdraw via Pix.

All amounts are integer cents.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    CompanyWallet,
    CreatorBalance,
    WalletTransaction,
    SalesTracking,
    CreatorCommission,
)
from ..utils.exceptions import (
    InsufficientBalanceError,
    ValidationError,
    NotFoundError,
    DuplicateError,
    InvalidStatusTransitionError,
)

logger = logging.getLogger(__name__)

BILLING_CYCLE_DAY = 10
PAYMENT_TYPES = ('payment_fixed', 'payment_variable', 'commission', 'bonus')
PENDING_RELEASE_DAYS = 7
MIN_WITHDRAWAL = 1000  # R$ 10,00


def billing_cycle_for(today: date) -> tuple:
    """Billing cycle that starts on the 10th of today's month and ends on the 10th of the next."""
    start = date(today.year, today.month, BILLING_CYCLE_DAY)
    if today.month == 12:
        end = date(today.year + 1, 1, BILLING_CYCLE_DAY)
    else:
        end = date(today.year, today.month + 1, BILLING_CYCLE_DAY)
    return start, end


def commission_for(order_value: int, commission_rate_bps: int) -> int:
    """Commission in cents, rounded half up."""
    if not commission_rate_bps:
        return 0
    return (order_value * commission_rate_bps + 5000) // 10000


def _require_positive(amount) -> int:
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationError('Amount must be an integer number of cents', 'amount')
    if amount <= 0:
        raise ValidationError('Amount must be positive', 'amount')
    return amount


class WalletService:
    """Money movements between company wallets and creator balances."""

    def get_or_create_company_wallet(self, company_id: int) -> CompanyWallet:
        wallet = CompanyWallet.query.filter_by(company_id=company_id).first()
        if wallet:
            return wallet

        start, end = billing_cycle_for(date.today())
        wallet = CompanyWallet(
            company_id=company_id,
            balance=0,
            reserved_balance=0,
            billing_cycle_start=start,
            billing_cycle_end=end,
        )
        db.session.add(wallet)
        db.session.flush()
        return wallet

    def get_or_create_creator_balance(self, user_id: int) -> CreatorBalance:
        balance = CreatorBalance.query.filter_by(user_id=user_id).first()
        if balance:
            return balance

        balance = CreatorBalance(user_id=user_id, available_balance=0, pending_balance=0)
        db.session.add(balance)
        db.session.flush()
        return balance

    def deposit(self, company_id: int, amount: int, description: str = None) -> WalletTransaction:
        """Add funds to a company wallet (Pix/boleto confirmed upstream)."""
        amount = _require_positive(amount)
        wallet = self.get_or_create_company_wallet(company_id)
        wallet.balance = (wallet.balance or 0) + amount

        transaction = WalletTransaction(
            company_wallet_id=wallet.id,
            type='deposit',
            amount=amount,
            balance_after=wallet.balance,
            description=description or 'Depósito',
            status='completed',
        )
        db.session.add(transaction)
        db.session.commit()
        logger.info(f"Wallet deposit company={company_id} amount={amount}")
        return transaction

    def pay_creator(
        self,
        company_id: int,
        creator_user_id: int,
        amount: int,
        type: str = 'payment_fixed',
        description: str = '',
        campaign_id: Optional[int] = None,
        commit: bool = True,
    ) -> Dict[str, WalletTransaction]:
        """
        Move money from a company wallet to a creator's pending balance.

        Raises:
            InsufficientBalanceError: wallet balance is lower than amount
        """
        amount = _require_positive(amount)
        if type not in PAYMENT_TYPES:
            raise ValidationError(f'Invalid payment type: {type}', 'type')

        wallet = self.get_or_create_company_wallet(company_id)
        creator_balance = self.get_or_create_creator_balance(creator_user_id)

        if (wallet.balance or 0) < amount:
            raise InsufficientBalanceError(wallet.balance or 0, amount)

        wallet.balance -= amount
        creator_balance.pending_balance = (creator_balance.pending_balance or 0) + amount

        company_tx = WalletTransaction(
            company_wallet_id=wallet.id,
            type=type,
            amount=-amount,
            balance_after=wallet.balance,
            description=description,
            related_user_id=creator_user_id,
            related_campaign_id=campaign_id,
            status='pending',
        )
        creator_tx = WalletTransaction(
            creator_balance_id=creator_balance.id,
            type='transfer_in',
            amount=amount,
            balance_after=creator_balance.pending_balance,
            description=description,
            related_campaign_id=campaign_id,
            status='pending',
        )
        db.session.add_all([company_tx, creator_tx])

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        logger.info(f"Paid creator {creator_user_id} {amount} from company {company_id} ({type})")
        return {'company_transaction': company_tx, 'creator_transaction': creator_tx}

    def release_pending(self, older_than_days: int = PENDING_RELEASE_DAYS) -> Dict[str, int]:
        """Move settled transfer_in amounts from pending to available."""
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)
        pending = WalletTransaction.query.filter(
            WalletTransaction.type == 'transfer_in',
            WalletTransaction.status == 'pending',
            WalletTransaction.creator_balance_id.isnot(None),
            WalletTransaction.created_at <= cutoff,
        ).all()

        released = 0
        total = 0
        for tx in pending:
            balance = CreatorBalance.query.get(tx.creator_balance_id)
            amount = min(tx.amount, balance.pending_balance or 0)
            balance.pending_balance = (balance.pending_balance or 0) - amount
            balance.available_balance = (balance.available_balance or 0) + amount
            tx.status = 'completed'
            released += 1
            total += amount

        db.session.commit()
        return {'released': released, 'amount': total}

    def request_withdrawal(self, user_id: int, amount: int) -> WalletTransaction:
        """Withdraw from the available balance to the creator's Pix key."""
        amount = _require_positive(amount)
        if amount < MIN_WITHDRAWAL:
            raise ValidationError('Minimum withdrawal is R$ 10,00', 'amount')

        balance = self.get_or_create_creator_balance(user_id)
        if not balance.pix_key:
            raise ValidationError('Cadastre uma chave Pix antes de sacar', 'pix_key')
        if (balance.available_balance or 0) < amount:
            raise InsufficientBalanceError(balance.available_balance or 0, amount)

        balance.available_balance -= amount
        transaction = WalletTransaction(
            creator_balance_id=balance.id,
            type='withdrawal',
            amount=-amount,
            balance_after=balance.available_balance,
            description=f'Saque Pix ({balance.pix_key_type or "chave"})',
            status='pending',
        )
        db.session.add(transaction)
        db.session.commit()
        return transaction

    def update_pix_key(self, user_id: int, pix_key: str, pix_key_type: str) -> CreatorBalance:
        if pix_key_type not in CreatorBalance.PIX_KEY_TYPES:
            raise ValidationError(f'Invalid Pix key type: {pix_key_type}', 'pix_key_type')
        if not pix_key or not pix_key.strip():
            raise ValidationError('Pix key is required', 'pix_key')
        balance = self.get_or_create_creator_balance(user_id)
        balance.pix_key = pix_key.strip()
        balance.pix_key_type = pix_key_type
        db.session.commit()
        return balance

    def get_company_transactions(self, company_id: int, limit: int = 50) -> List[WalletTransaction]:
        wallet = self.get_or_create_company_wallet(company_id)
        return WalletTransaction.query.filter_by(company_wallet_id=wallet.id) \
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc()).limit(limit).all()

    def get_creator_transactions(self, user_id: int, limit: int = 50) -> List[WalletTransaction]:
        balance = self.get_or_create_creator_balance(user_id)
        return WalletTransaction.query.filter_by(creator_balance_id=balance.id) \
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc()).limit(limit).all()

    # ==================== Sales & commissions ====================

    def create_sale_with_commission(
        self,
        company_id: int,
        creator_id: int,
        order_id: str,
        order_value: int,
        commission_rate_bps: int = 0,
        commission: Optional[int] = None,
        campaign_id: Optional[int] = None,
        coupon_code: Optional[str] = None,
        platform: str = 'manual',
    ) -> Dict[str, Any]:
        """
        Record an attributed sale. A pending commission is created when the
        commission (explicit, or order_value x bps / 10000) is positive.
        """
        if not order_id:
            raise ValidationError('order_id is required', 'order_id')
        order_value = _require_positive(order_value)
        commission_amount = commission if commission is not None else commission_for(
            order_value, commission_rate_bps or 0
        )

        sale = SalesTracking(
            company_id=company_id,
            campaign_id=campaign_id,
            creator_id=creator_id,
            order_id=str(order_id),
            order_value=order_value,
            commission_rate_bps=commission_rate_bps or 0,
            commission_value=commission_amount,
            coupon_code=coupon_code,
            platform=platform,
        )
        db.session.add(sale)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateError('Sale', f'order {order_id}')

        commission_row = None
        if commission_amount > 0:
            commission_row = CreatorCommission(
                sale_id=sale.id,
                company_id=company_id,
                creator_id=creator_id,
                amount=commission_amount,
                status='pending',
            )
            db.session.add(commission_row)

        db.session.commit()
        return {'sale': sale, 'commission': commission_row}

    def approve_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        """Approve a pending commission and pay it from the company wallet."""
        commission = CreatorCommission.query.filter_by(id=commission_id, company_id=company_id).first()
        if not commission:
            raise NotFoundError('Commission', commission_id)
        if commission.status != 'pending':
            raise InvalidStatusTransitionError('commission', commission.status, 'approved')

        self.pay_creator(
            company_id,
            commission.creator_id,
            commission.amount,
            type='commission',
            description=f'Comissão pedido {commission.sale.order_id}',
            campaign_id=commission.sale.campaign_id,
            commit=False,
        )
        commission.status = 'paid'
        commission.approved_at = datetime.utcnow()
        commission.paid_at = datetime.utcnow()
        db.session.commit()
        return commission

    def reject_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        commission = CreatorCommission.query.filter_by(id=commission_id, company_id=company_id).first()
        if not commission:
            raise NotFoundError('Commission', commission_id)
        if commission.status != 'pending':
            raise InvalidStatusTransitionError('commission', commission.status, 'rejected')
        commission.status = 'rejected'
        db.session.commit()
        return commission


wallet_service = WalletService()
