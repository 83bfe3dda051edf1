"""
Tests for company wallets, creator balances, sales and commissions.

Amounts are integer cents throughout.
"""
from datetime import date, datetime, timedelta

import pytest

from app.models import WalletTransaction, CreatorBalance, SalesTracking
from app.services.wallet_service import (
    WalletService,
    billing_cycle_for,
    commission_for,
    MIN_WITHDRAWAL,
)
from app.utils.exceptions import (
    InsufficientBalanceError,
    ValidationError,
    DuplicateError,
    InvalidStatusTransitionError,
)


@pytest.fixture
def wallet():
    return WalletService()


def backdate_creator_transfers(days):
    for tx in WalletTransaction.query.filter_by(type='transfer_in').all():
        tx.created_at = datetime.utcnow() - timedelta(days=days)


class TestHelpers:

    def test_billing_cycle(self):
        assert billing_cycle_for(date(2025, 3, 22)) == (date(2025, 3, 10), date(2025, 4, 10))

    def test_billing_cycle_december(self):
        assert billing_cycle_for(date(2025, 12, 1)) == (date(2025, 12, 10), date(2026, 1, 10))

    @pytest.mark.parametrize('value, bps, expected', [
        (10000, 1000, 1000),   # 10% of R$ 100,00
        (12345, 500, 617),     # 617.25 rounds down
        (12350, 500, 618),     # 617.5 rounds half up
        (9999, 0, 0),
    ])
    def test_commission_rounding(self, value, bps, expected):
        assert commission_for(value, bps) == expected


class TestCompanyWallet:
    """Tests for deposits and creator payments."""

    def test_deposit(self, app, wallet, sample_company):
        tx = wallet.deposit(sample_company.id, 50000)
        assert tx.type == 'deposit'
        assert tx.balance_after == 50000
        assert wallet.get_or_create_company_wallet(sample_company.id).balance == 50000

    @pytest.mark.parametrize('amount', [0, -100, 'abc', None])
    def test_deposit_rejects_bad_amount(self, app, wallet, sample_company, amount):
        with pytest.raises(ValidationError):
            wallet.deposit(sample_company.id, amount)

    def test_pay_creator_lands_in_pending(self, app, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 50000)
        result = wallet.pay_creator(sample_company.id, sample_creator.id, 20000, description='Reels')

        assert result['company_transaction'].amount == -20000
        assert result['creator_transaction'].type == 'transfer_in'

        balance = CreatorBalance.query.filter_by(user_id=sample_creator.id).first()
        assert balance.pending_balance == 20000
        assert balance.available_balance == 0
        assert wallet.get_or_create_company_wallet(sample_company.id).balance == 30000

    def test_pay_creator_insufficient_balance(self, app, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 1000)
        with pytest.raises(InsufficientBalanceError) as exc:
            wallet.pay_creator(sample_company.id, sample_creator.id, 5000)
        assert exc.value.code == 'INSUFFICIENT_BALANCE'
        assert exc.value.required == 5000

    def test_pay_creator_invalid_type(self, app, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 1000)
        with pytest.raises(ValidationError):
            wallet.pay_creator(sample_company.id, sample_creator.id, 500, type='gift')


class TestCreatorBalance:
    """Tests for release and withdrawal."""

    def test_release_only_settled_transfers(self, app, db, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 50000)
        wallet.pay_creator(sample_company.id, sample_creator.id, 10000)

        assert wallet.release_pending() == {'released': 0, 'amount': 0}

        backdate_creator_transfers(8)
        db.session.commit()
        assert wallet.release_pending() == {'released': 1, 'amount': 10000}

        balance = CreatorBalance.query.filter_by(user_id=sample_creator.id).first()
        assert balance.pending_balance == 0
        assert balance.available_balance == 10000

        # Already released transfers stay released
        assert wallet.release_pending()['released'] == 0

    def test_withdrawal_requires_pix_key(self, app, db, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 50000)
        wallet.pay_creator(sample_company.id, sample_creator.id, 10000)
        backdate_creator_transfers(8)
        db.session.commit()
        wallet.release_pending()

        with pytest.raises(ValidationError) as exc:
            wallet.request_withdrawal(sample_creator.id, 5000)
        assert exc.value.code == 'INVALID_PIX_KEY'

        wallet.update_pix_key(sample_creator.id, 'ana@creator.com', 'email')
        tx = wallet.request_withdrawal(sample_creator.id, 5000)
        assert tx.amount == -5000
        assert tx.status == 'pending'
        assert tx.balance_after == 5000

    def test_withdrawal_minimum(self, app, wallet, sample_creator):
        with pytest.raises(ValidationError):
            wallet.request_withdrawal(sample_creator.id, MIN_WITHDRAWAL - 1)

    def test_withdrawal_more_than_available(self, app, wallet, sample_creator):
        wallet.update_pix_key(sample_creator.id, '11999998888', 'phone')
        with pytest.raises(InsufficientBalanceError):
            wallet.request_withdrawal(sample_creator.id, 5000)

    def test_invalid_pix_key_type(self, app, wallet, sample_creator):
        with pytest.raises(ValidationError):
            wallet.update_pix_key(sample_creator.id, 'abc', 'bitcoin')


class TestCommissions:
    """Tests for attributed sales and commission approval."""

    def test_sale_creates_pending_commission(self, app, wallet, sample_company, sample_creator):
        result = wallet.create_sale_with_commission(
            sample_company.id, sample_creator.id, 'PED-1001', 20000, commission_rate_bps=1000,
        )
        assert result['sale'].commission_value == 2000
        assert result['commission'].status == 'pending'
        assert result['commission'].amount == 2000

    def test_zero_rate_creates_no_commission(self, app, wallet, sample_company, sample_creator):
        result = wallet.create_sale_with_commission(sample_company.id, sample_creator.id, 'PED-1', 20000)
        assert result['commission'] is None

    def test_duplicate_order(self, app, wallet, sample_company, sample_creator):
        wallet.create_sale_with_commission(sample_company.id, sample_creator.id, 'PED-1', 20000)
        with pytest.raises(DuplicateError):
            wallet.create_sale_with_commission(sample_company.id, sample_creator.id, 'PED-1', 20000)
        assert SalesTracking.query.count() == 1

    def test_approve_pays_creator(self, app, wallet, sample_company, sample_creator):
        wallet.deposit(sample_company.id, 10000)
        result = wallet.create_sale_with_commission(
            sample_company.id, sample_creator.id, 'PED-2', 20000, commission_rate_bps=1000,
        )
        commission = wallet.approve_commission(sample_company.id, result['commission'].id)

        assert commission.status == 'paid'
        assert CreatorBalance.query.filter_by(user_id=sample_creator.id).first().pending_balance == 2000
        with pytest.raises(InvalidStatusTransitionError):
            wallet.approve_commission(sample_company.id, commission.id)

    def test_reject(self, app, wallet, sample_company, sample_creator):
        result = wallet.create_sale_with_commission(
            sample_company.id, sample_creator.id, 'PED-3', 20000, commission=700,
        )
        assert wallet.reject_commission(sample_company.id, result['commission'].id).status == 'rejected'
