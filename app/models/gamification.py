"""
Gamification Models

Points ledger, per-campaign scoring rules, prizes, reward entitlements and
metric snapshots used to turn post performance into community points.
"""

from datetime import datetime
from ..extensions import db


class PointsLedger(db.Model):
    """Append-only points history. One row per awarded event."""

    __tablename__ = 'points_ledger'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    delta_points = db.Column(db.Integer, nullable=False)
    event_type = db.Column(db.String(50), nullable=False)
    # Types: post_created, reel_created, story_created, views_milestone, like_milestone,
    #        comment_milestone, sale_confirmed, delivery_approved, ontime_bonus,
    #        course_completed, milestone_reached, manual_adjustment
    ref_type = db.Column(db.String(50))
    ref_id = db.Column(db.String(100))
    notes = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.UniqueConstraint('campaign_id', 'creator_id', 'event_type', 'ref_type', 'ref_id',
                            name='uq_points_ledger_event'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'campaign_id': self.campaign_id,
            'creator_id': self.creator_id,
            'delta_points': self.delta_points,
            'event_type': self.event_type,
            'ref_type': self.ref_type,
            'ref_id': self.ref_id,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CampaignPointsRules(db.Model):
    """Scoring overrides for one campaign."""

    __tablename__ = 'campaign_points_rules'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False, unique=True)
    rules = db.Column(db.JSON, default=dict)
    # When true the campaign's event points replace the brand defaults
    overrides_brand = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'rules': self.rules or {},
            'overrides_brand': self.overrides_brand,
        }


class CampaignPrize(db.Model):
    """Prize for a ranking position or a points milestone."""

    __tablename__ = 'campaign_prizes'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # ranking_place, milestone
    rank_position = db.Column(db.Integer)
    milestone_points = db.Column(db.Integer)

    reward_kind = db.Column(db.String(20), default='cash')  # cash, product, both, none
    cash_amount = db.Column(db.Integer, default=0)  # cents
    product_sku = db.Column(db.String(100))
    product_description = db.Column(db.String(300))
    notes = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'type': self.type,
            'rank_position': self.rank_position,
            'milestone_points': self.milestone_points,
            'reward_kind': self.reward_kind,
            'cash_amount': self.cash_amount or 0,
            'product_sku': self.product_sku,
            'product_description': self.product_description,
        }


class RewardEntitlement(db.Model):
    """A creator's right to a prize, pending brand approval."""

    __tablename__ = 'reward_entitlements'

    STATUSES = ('pending', 'approved', 'rejected', 'completed', 'cancelled')

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    prize_id = db.Column(db.Integer, db.ForeignKey('campaign_prizes.id'), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)

    source_type = db.Column(db.String(30))  # milestone_reached, ranking_place
    points_at_time = db.Column(db.Integer)
    status = db.Column(db.String(20), default='pending')
    reward_kind = db.Column(db.String(20))
    cash_amount = db.Column(db.Integer, default=0)
    wallet_transaction_id = db.Column(db.Integer, db.ForeignKey('wallet_transactions.id'))
    tracking_code = db.Column(db.String(100))
    rejection_reason = db.Column(db.String(300))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    approved_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    prize = db.relationship('CampaignPrize')

    __table_args__ = (
        db.UniqueConstraint('creator_id', 'prize_id', name='uq_reward_entitlement'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'prize': self.prize.to_dict() if self.prize else None,
            'creator_id': self.creator_id,
            'company_id': self.company_id,
            'source_type': self.source_type,
            'points_at_time': self.points_at_time,
            'status': self.status,
            'reward_kind': self.reward_kind,
            'cash_amount': self.cash_amount or 0,
            'tracking_code': self.tracking_code,
            'rejection_reason': self.rejection_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class CampaignMetricSnapshot(db.Model):
    """Last awarded counters of one post, used to compute metric deltas."""

    __tablename__ = 'campaign_metric_snapshots'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    post_id = db.Column(db.String(100), nullable=False)
    platform = db.Column(db.String(20), default='instagram')

    last_views = db.Column(db.Integer, default=0)
    last_likes = db.Column(db.Integer, default=0)
    last_comments = db.Column(db.Integer, default=0)

    update_count = db.Column(db.Integer, default=0)
    sum_views_deltas = db.Column(db.Integer, default=0)
    sum_likes_deltas = db.Column(db.Integer, default=0)
    sum_comments_deltas = db.Column(db.Integer, default=0)
    flagged_for_review = db.Column(db.Boolean, default=False)
    flag_reason = db.Column(db.String(200))

    points_awarded = db.Column(db.Integer, default=0)
    points_today = db.Column(db.Integer, default=0)
    points_day = db.Column(db.Date)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = db.relationship('Campaign')

    __table_args__ = (
        db.UniqueConstraint('campaign_id', 'creator_id', 'post_id', name='uq_metric_snapshot'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'creator_id': self.creator_id,
            'post_id': self.post_id,
            'last_views': self.last_views,
            'last_likes': self.last_likes,
            'last_comments': self.last_comments,
            'update_count': self.update_count,
            'platform': self.platform,
            'flagged_for_review': self.flagged_for_review,
            'flag_reason': self.flag_reason,
            'points_awarded': self.points_awarded,
        }
