"""
Reward Service for CreatorConnect.

Handles the brand side of prize entitlements: approval, rejection,
fulfilment (cash through the company wallet, products through shipping)
and the campaign closeout that hands out ranking prizes.
"""

from datetime import datetime
from typing import List, Dict, Any, Optional

from flask import current_app

from ..extensions import db
from ..models import RewardEntitlement, CampaignPrize, Campaign
from ..utils.exceptions import NotFoundError, InvalidStatusTransitionError, CampaignNotFoundError
from .points_service import PointsService
from .wallet_service import wallet_service
from .notification_service import notification_service


class RewardService:
    """Reward entitlement lifecycle for one company."""

    def __init__(self, company_id: int, wallet=None, notifier=None):
        self.company_id = company_id
        self.wallet = wallet or wallet_service
        self.notifier = notifier or notification_service

    def _get(self, entitlement_id: int) -> RewardEntitlement:
        entitlement = RewardEntitlement.query.filter_by(
            id=entitlement_id, company_id=self.company_id
        ).first()
        if not entitlement:
            raise NotFoundError('Reward', entitlement_id)
        return entitlement

    def list_entitlements(
        self,
        status: Optional[str] = None,
        campaign_id: Optional[int] = None,
        creator_id: Optional[int] = None,
    ) -> List[RewardEntitlement]:
        query = RewardEntitlement.query.filter_by(company_id=self.company_id)
        if status:
            query = query.filter_by(status=status)
        if campaign_id:
            query = query.filter_by(campaign_id=campaign_id)
        if creator_id:
            query = query.filter_by(creator_id=creator_id)
        return query.order_by(RewardEntitlement.created_at.desc()).all()

    def approve(self, entitlement_id: int) -> RewardEntitlement:
        entitlement = self._get(entitlement_id)
        if entitlement.status != 'pending':
            raise InvalidStatusTransitionError('reward', entitlement.status, 'approved')

        entitlement.status = 'approved'
        entitlement.approved_at = datetime.utcnow()
        db.session.commit()
        return entitlement

    def reject(self, entitlement_id: int, reason: Optional[str] = None) -> RewardEntitlement:
        entitlement = self._get(entitlement_id)
        if entitlement.status not in ('pending', 'approved'):
            raise InvalidStatusTransitionError('reward', entitlement.status, 'rejected')

        entitlement.status = 'rejected'
        entitlement.rejection_reason = reason
        db.session.commit()
        return entitlement

    def bulk_approve(self, entitlement_ids: List[int]) -> int:
        """Approve every pending entitlement in the list. Returns how many were approved."""
        approved = 0
        for entitlement_id in entitlement_ids:
            try:
                self.approve(entitlement_id)
                approved += 1
            except (NotFoundError, InvalidStatusTransitionError) as e:
                current_app.logger.warning(f"Skipping reward {entitlement_id}: {e.message}")
        return approved

    def execute(self, entitlement_id: int, tracking_code: Optional[str] = None) -> RewardEntitlement:
        """
        Fulfil an approved entitlement.

        cash: pays the creator from the company wallet (type 'bonus')
        product: records the shipping tracking code
        both: does both
        none: badge only, completed right away

        Raises:
            InvalidStatusTransitionError: entitlement is not approved
            InsufficientBalanceError: company wallet cannot cover the cash prize
        """
        entitlement = self._get(entitlement_id)
        if entitlement.status != 'approved':
            raise InvalidStatusTransitionError('reward', entitlement.status, 'completed')

        kind = entitlement.reward_kind or (entitlement.prize.reward_kind if entitlement.prize else 'none')

        if kind in ('cash', 'both') and (entitlement.cash_amount or 0) > 0:
            result = self.wallet.pay_creator(
                self.company_id,
                entitlement.creator_id,
                entitlement.cash_amount,
                type='bonus',
                description=f'Prêmio da campanha #{entitlement.campaign_id}',
                campaign_id=entitlement.campaign_id,
                commit=False,
            )
            entitlement.wallet_transaction_id = result['company_transaction'].id

        if kind in ('product', 'both') and tracking_code:
            entitlement.tracking_code = tracking_code

        entitlement.status = 'completed'
        entitlement.completed_at = datetime.utcnow()
        db.session.commit()

        self.notifier.notify(
            entitlement.creator_id,
            'reward',
            'Prêmio liberado',
            'Seu prêmio de campanha foi processado.',
            action_url='/rewards',
        )
        current_app.logger.info(f"Reward {entitlement.id} executed ({kind}) for creator {entitlement.creator_id}")
        return entitlement

    def closeout_campaign(self, campaign_id: int) -> Dict[str, Any]:
        """
        Close a campaign and create ranking_place entitlements for its top N.

        Entitlements that already exist are left alone, so running the
        closeout twice creates nothing new.
        """
        campaign = Campaign.query.filter_by(id=campaign_id, company_id=self.company_id).first()
        if not campaign:
            raise CampaignNotFoundError(campaign_id)

        prizes = CampaignPrize.query.filter_by(campaign_id=campaign_id, type='ranking_place') \
            .order_by(CampaignPrize.rank_position).all()
        ranked_prizes = [p for p in prizes if p.rank_position]

        created = []
        if ranked_prizes:
            top_n = max(p.rank_position for p in ranked_prizes)
            leaderboard = PointsService(self.company_id).get_leaderboard(campaign_id=campaign_id, limit=top_n)
            by_rank = {row['rank']: row for row in leaderboard}

            for prize in ranked_prizes:
                row = by_rank.get(prize.rank_position)
                if not row:
                    continue
                exists = RewardEntitlement.query.filter_by(creator_id=row['creator_id'], prize_id=prize.id).first()
                if exists:
                    continue
                entitlement = RewardEntitlement(
                    campaign_id=campaign_id,
                    prize_id=prize.id,
                    creator_id=row['creator_id'],
                    company_id=self.company_id,
                    source_type='ranking_place',
                    points_at_time=row['total_points'],
                    status='pending',
                    reward_kind=prize.reward_kind,
                    cash_amount=prize.cash_amount or 0,
                )
                db.session.add(entitlement)
                created.append(entitlement)

        campaign.status = 'closed'
        db.session.commit()

        current_app.logger.info(
            f"Campaign {campaign_id} closed with {len(created)} ranking reward(s)"
        )
        return {'campaign': campaign, 'entitlements': created}
