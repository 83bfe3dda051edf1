"""
Wallets, balances, sales and commissions. All amounts are integer cents.
"""
from datetime import datetime

from ..extensions import db


class CompanyWallet(db.Model):
    """Prepaid balance a company uses to pay creators."""
    __tablename__ = 'company_wallets'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, unique=True)
    balance = db.Column(db.Integer, nullable=False, default=0)
    reserved_balance = db.Column(db.Integer, nullable=False, default=0)
    billing_cycle_start = db.Column(db.Date)
    billing_cycle_end = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def available_balance(self):
        return (self.balance or 0) - (self.reserved_balance or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'balance': self.balance or 0,
            'reserved_balance': self.reserved_balance or 0,
            'available_balance': self.available_balance,
            'billing_cycle_start': self.billing_cycle_start.isoformat() if self.billing_cycle_start else None,
            'billing_cycle_end': self.billing_cycle_end.isoformat() if self.billing_cycle_end else None,
        }


class CreatorBalance(db.Model):
    """Money owed to a creator. Pending funds become available after release."""
    __tablename__ = 'creator_balances'

    PIX_KEY_TYPES = ('cpf', 'cnpj', 'email', 'phone', 'random')

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    available_balance = db.Column(db.Integer, nullable=False, default=0)
    pending_balance = db.Column(db.Integer, nullable=False, default=0)
    pix_key = db.Column(db.String(150))
    pix_key_type = db.Column(db.String(20))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'available_balance': self.available_balance or 0,
            'pending_balance': self.pending_balance or 0,
            'pix_key': self.pix_key,
            'pix_key_type': self.pix_key_type,
        }


class WalletTransaction(db.Model):
    """Movement on a company wallet or a creator balance."""
    __tablename__ = 'wallet_transactions'

    TYPES = (
        'deposit', 'withdrawal', 'payment_fixed', 'payment_variable', 'commission',
        'bonus', 'refund', 'transfer_in', 'transfer_out', 'box_allocation',
    )

    id = db.Column(db.Integer, primary_key=True)
    company_wallet_id = db.Column(db.Integer, db.ForeignKey('company_wallets.id'), index=True)
    creator_balance_id = db.Column(db.Integer, db.ForeignKey('creator_balances.id'), index=True)
    type = db.Column(db.String(30), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # signed
    balance_after = db.Column(db.Integer)
    status = db.Column(db.String(20), default='completed')  # pending, completed, failed, cancelled
    description = db.Column(db.String(300))
    related_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    related_campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'))
    related_application_id = db.Column(db.Integer, db.ForeignKey('applications.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'company_wallet_id': self.company_wallet_id,
            'creator_balance_id': self.creator_balance_id,
            'type': self.type,
            'amount': self.amount,
            'balance_after': self.balance_after,
            'status': self.status,
            'description': self.description,
            'related_user_id': self.related_user_id,
            'related_campaign_id': self.related_campaign_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class SalesTracking(db.Model):
    """An order attributed to a creator (coupon or link)."""
    __tablename__ = 'sales_tracking'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'))
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.String(100), nullable=False)
    order_value = db.Column(db.Integer, nullable=False)
    commission_rate_bps = db.Column(db.Integer, default=0)  # 1000 = 10%
    commission_value = db.Column(db.Integer, default=0)
    coupon_code = db.Column(db.String(50))
    platform = db.Column(db.String(30), default='manual')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('company_id', 'order_id', name='uq_sale_order'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'campaign_id': self.campaign_id,
            'creator_id': self.creator_id,
            'order_id': self.order_id,
            'order_value': self.order_value,
            'commission_rate_bps': self.commission_rate_bps,
            'commission_value': self.commission_value,
            'coupon_code': self.coupon_code,
            'platform': self.platform,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CreatorCommission(db.Model):
    """Commission owed on an attributed sale."""
    __tablename__ = 'creator_commissions'

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales_tracking.id'), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='pending')  # pending, approved, paid, rejected
    approved_at = db.Column(db.DateTime)
    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sale = db.relationship('SalesTracking')

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'company_id': self.company_id,
            'creator_id': self.creator_id,
            'amount': self.amount,
            'status': self.status,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
