"""
Points Service for CreatorConnect brand communities.

Points are the community currency a brand awards its creators:
- Content events (post, reel, story created, delivery approved, sale)
- Metric growth on campaign posts (views, likes, comments)
- Milestone prizes unlocked by accumulated campaign points

ARCHITECTURE:
- PointsLedger is the append-only source of truth. Every awarded event is
  unique on (campaign, creator, event_type, ref_type, ref_id).
- BrandCreatorMembership.points_cache is the running total per brand and
  drives the creator's tier.
- CampaignMetricSnapshot keeps the last awarded counters of each post so
  metric updates only ever award the growth since the last update.
"""

from datetime import datetime, date, timedelta
from typing import Optional, List, Dict, Any

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    PointsLedger,
    CampaignPointsRules,
    CampaignPrize,
    RewardEntitlement,
    CampaignMetricSnapshot,
    BrandCreatorMembership,
    BrandTierConfig,
    Campaign,
    User,
)


# ==================== Configuration ====================

DEFAULT_SCORING_RULES = {
    'points_per_deliverable': 100,
    'points_on_time_bonus': 25,
    'points_per_1k_views': 1,
    'points_per_comment': 1,
    'points_per_like': 0.1,
    'points_per_sale': 10,
    'max_points_per_post': 1000,
    'max_points_per_day': 5000,
    'max_points_total_campaign': 50000,
}

# Event points when the campaign does not override the brand defaults
DEFAULT_EVENT_POINTS = {
    'post_created': 100,
    'reel_created': 150,
    'story_created': 50,
    'views_milestone': 10,
    'like_milestone': 5,
    'comment_milestone': 10,
    'sale_confirmed': 100,
    'delivery_approved': 100,
    'ontime_bonus': 25,
    'course_completed': 200,
}

# Path inside CampaignPointsRules.rules for each event type
EVENT_RULE_PATHS = {
    'post_created': ('postTypes', 'post_feed'),
    'reel_created': ('postTypes', 'reels'),
    'story_created': ('postTypes', 'stories'),
    'views_milestone': ('viewsMilestone', 'points'),
    'like_milestone': ('likesMilestone', 'points'),
    'comment_milestone': ('commentsMilestone', 'points'),
    'sale_confirmed': ('salesPoints', 'pointsPerSale'),
    'delivery_approved': ('deliveryPoints', 'approved'),
    'ontime_bonus': ('deliveryPoints', 'onTimeBonus'),
    'course_completed': ('courseCompletionPoints',),
}

# Updates that only establish a baseline before points are awarded
MIN_BASELINE_SAMPLES = 3
SPIKE_MULTIPLIER = 10

LEADERBOARD_RANGES = {
    'week': 7,
    'month': 30,
    'all': None,
}


def _rule_value(rules: Dict[str, Any], path: tuple):
    value = rules
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _scale(points: List[int], limit: int) -> List[int]:
    """Scale points down proportionally (floor) so their sum fits in limit."""
    total = sum(points)
    if total <= limit:
        return points
    ratio = limit / total
    return [int(p * ratio) for p in points]


class PointsService:
    """
    Ledger, tiers, scoring rules and leaderboards for one company.

    Usage:
        service = PointsService(company_id)

        # Award a content event
        entry = service.record_event(creator_id, 'reel_created', 'deliverable', '42', campaign_id=7)

        # Feed new post metrics
        result = service.process_metric_delta(7, creator_id, 'ig_123', views=5000, likes=300, comments=12)
    """

    def __init__(self, company_id: int):
        self.company_id = company_id

    # ==================== Ledger ====================

    def add_ledger_entry(
        self,
        creator_id: int,
        delta_points: int,
        event_type: str,
        ref_type: Optional[str] = None,
        ref_id: Optional[str] = None,
        campaign_id: Optional[int] = None,
        notes: Optional[str] = None,
        commit: bool = True,
    ) -> Optional[PointsLedger]:
        """
        Append one ledger row.

        Returns None without writing when the same event was already
        recorded. The lookup runs first because a NULL campaign never
        collides in a SQL unique index.
        """
        ref_id = str(ref_id) if ref_id is not None else None
        existing = PointsLedger.query.filter_by(
            campaign_id=campaign_id,
            creator_id=creator_id,
            event_type=event_type,
            ref_type=ref_type,
            ref_id=ref_id,
        ).first()
        if existing:
            return None

        entry = PointsLedger(
            company_id=self.company_id,
            campaign_id=campaign_id,
            creator_id=creator_id,
            delta_points=delta_points,
            event_type=event_type,
            ref_type=ref_type,
            ref_id=ref_id,
            notes=notes,
        )
        db.session.add(entry)

        if delta_points:
            self.update_creator_points(creator_id, delta_points, campaign_id=campaign_id, commit=False)

        if commit:
            db.session.commit()
        return entry

    def update_creator_points(
        self,
        creator_id: int,
        delta: int,
        campaign_id: Optional[int] = None,
        commit: bool = True,
    ) -> BrandCreatorMembership:
        """
        Add delta to the creator's brand points and re-evaluate the tier.

        A creator without a membership gets an 'invited' one (source
        'campaign') that holds the points until they actually join. The
        total never goes below zero.
        """
        membership = BrandCreatorMembership.query.filter_by(
            company_id=self.company_id, creator_id=creator_id
        ).first()
        if not membership:
            membership = BrandCreatorMembership(
                company_id=self.company_id,
                creator_id=creator_id,
                status='invited',
                source='campaign',
                source_campaign_id=campaign_id,
                points_cache=0,
            )
            db.session.add(membership)

        membership.points_cache = max(0, (membership.points_cache or 0) + delta)
        membership.last_activity_at = datetime.utcnow()

        tier = self.get_tier_for_points(membership.points_cache)
        membership.tier_id = tier.id if tier else None

        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return membership

    def get_tier_for_points(self, points: int) -> Optional[BrandTierConfig]:
        """Highest tier whose min_points is reached."""
        return BrandTierConfig.query.filter(
            BrandTierConfig.company_id == self.company_id,
            BrandTierConfig.min_points <= points,
        ).order_by(BrandTierConfig.min_points.desc()).first()

    # ==================== Rules ====================

    def get_effective_scoring_rules(self, campaign_id: Optional[int]) -> Dict[str, Any]:
        """Default scoring rules with the campaign's overrides applied."""
        effective = dict(DEFAULT_SCORING_RULES)
        if not campaign_id:
            return effective

        row = CampaignPointsRules.query.filter_by(campaign_id=campaign_id).first()
        rules = (row.rules if row else None) or {}

        overrides = {
            'points_per_deliverable': ('postTypes', 'post_feed'),
            'points_on_time_bonus': ('deliveryPoints', 'onTimeBonus'),
            'points_per_1k_views': ('viewsMilestone', 'points'),
            'points_per_comment': ('commentsMilestone', 'points'),
            'points_per_like': ('likesMilestone', 'points'),
            'points_per_sale': ('salesPoints', 'pointsPerSale'),
        }
        for key, path in overrides.items():
            value = _rule_value(rules, path)
            if value is not None:
                effective[key] = value

        caps = rules.get('caps') or {}
        for key in ('max_points_per_post', 'max_points_per_day', 'max_points_total_campaign'):
            if caps.get(key) is not None:
                effective[key] = caps[key]

        return effective

    def set_campaign_rules(self, campaign_id: int, rules: Dict[str, Any], overrides_brand: bool = False) -> CampaignPointsRules:
        row = CampaignPointsRules.query.filter_by(campaign_id=campaign_id).first()
        if not row:
            row = CampaignPointsRules(campaign_id=campaign_id)
            db.session.add(row)
        row.rules = rules or {}
        row.overrides_brand = bool(overrides_brand)
        db.session.commit()
        return row

    # ==================== Events ====================

    def points_for_event(self, event_type: str, campaign_id: Optional[int] = None) -> int:
        """Points an event is worth. Campaign rules count only when they override the brand."""
        rules = None
        if campaign_id:
            row = CampaignPointsRules.query.filter_by(campaign_id=campaign_id).first()
            if row and row.overrides_brand:
                rules = row.rules or {}

        if rules and event_type in EVENT_RULE_PATHS:
            value = _rule_value(rules, EVENT_RULE_PATHS[event_type])
            if value:
                return int(value)
        return DEFAULT_EVENT_POINTS.get(event_type, 0)

    def record_event(
        self,
        creator_id: int,
        event_type: str,
        ref_type: str,
        ref_id,
        campaign_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[PointsLedger]:
        """
        Award the points of a content event.

        Returns None for unknown events (0 points) and for events that were
        already awarded.
        """
        delta = self.points_for_event(event_type, campaign_id)
        if delta == 0:
            return None

        entry = self.add_ledger_entry(
            creator_id, delta, event_type,
            ref_type=ref_type, ref_id=ref_id, campaign_id=campaign_id, notes=notes,
        )
        if entry and campaign_id:
            self.check_milestone_rewards(campaign_id, creator_id)
        return entry

    # ==================== Metrics ====================

    def process_metric_delta(
        self,
        campaign_id: int,
        creator_id: int,
        post_id: str,
        views: int = 0,
        likes: int = 0,
        comments: int = 0,
        platform: str = 'instagram',
    ) -> Dict[str, Any]:
        """
        Award points for the growth of a post's counters since the last update.

        The first MIN_BASELINE_SAMPLES updates only seed the baseline. After
        that, deltas above SPIKE_MULTIPLIER times the historical average flag
        the snapshot for review. Per-post, per-day and campaign caps scale the
        points down in that order.

        Returns:
            {'points_awarded', 'flagged', 'flag_reason', 'seeding', 'snapshot'}
        """
        views, likes, comments = int(views or 0), int(likes or 0), int(comments or 0)
        snapshot = CampaignMetricSnapshot.query.filter_by(
            campaign_id=campaign_id, creator_id=creator_id, post_id=str(post_id)
        ).with_for_update().first()

        views_delta = max(0, views - ((snapshot.last_views or 0) if snapshot else 0))
        likes_delta = max(0, likes - ((snapshot.last_likes or 0) if snapshot else 0))
        comments_delta = max(0, comments - ((snapshot.last_comments or 0) if snapshot else 0))

        if views_delta <= 0 and likes_delta <= 0 and comments_delta <= 0:
            return {
                'points_awarded': 0,
                'flagged': bool(snapshot and snapshot.flagged_for_review),
                'flag_reason': None,
                'seeding': False,
                'snapshot': snapshot,
            }

        previous_count = (snapshot.update_count or 0) if snapshot else 0
        update_count = previous_count + 1
        seeding = update_count <= MIN_BASELINE_SAMPLES

        today = date.today()
        rules = self.get_effective_scoring_rules(campaign_id)
        flagged = False
        flag_reason = None
        points = [0, 0, 0]

        if not seeding:
            points = [
                int(views_delta / 1000 * rules['points_per_1k_views']),
                int(likes_delta * rules['points_per_like']),
                int(comments_delta * rules['points_per_comment']),
            ]

            avg_views = (snapshot.sum_views_deltas or 0) / previous_count
            avg_likes = (snapshot.sum_likes_deltas or 0) / previous_count
            if avg_views > 0 and views_delta > avg_views * SPIKE_MULTIPLIER:
                flagged = True
                flag_reason = f'Abnormal views spike: {views_delta} vs avg {round(avg_views)}'
            elif avg_likes > 0 and likes_delta > avg_likes * SPIKE_MULTIPLIER:
                flagged = True
                flag_reason = f'Abnormal likes spike: {likes_delta} vs avg {round(avg_likes)}'

            points_today = (snapshot.points_today or 0) if snapshot.points_day == today else 0
            points = _scale(points, rules['max_points_per_post'])
            points = _scale(points, max(0, rules['max_points_per_day'] - points_today))
            points = _scale(points, max(0, rules['max_points_total_campaign'] - (snapshot.points_awarded or 0)))

        views_points, likes_points, comments_points = points
        total = views_points + likes_points + comments_points

        ref_id = f'{post_id}:{update_count}'
        entries = (
            ('views_milestone', views_points, f'+{views_delta} views on {platform}'),
            ('like_milestone', likes_points, f'+{likes_delta} likes on {platform}'),
            ('comment_milestone', comments_points, f'+{comments_delta} comments on {platform}'),
        )
        for event_type, delta, notes in entries:
            if delta > 0:
                self.add_ledger_entry(
                    creator_id, delta, event_type,
                    ref_type='post', ref_id=ref_id, campaign_id=campaign_id, notes=notes, commit=False,
                )

        if not snapshot:
            snapshot = CampaignMetricSnapshot(
                campaign_id=campaign_id,
                creator_id=creator_id,
                post_id=str(post_id),
                platform=platform,
                sum_views_deltas=0,
                sum_likes_deltas=0,
                sum_comments_deltas=0,
                points_awarded=0,
                points_today=0,
            )
            db.session.add(snapshot)

        if snapshot.points_day != today:
            snapshot.points_today = 0
            snapshot.points_day = today

        snapshot.last_views = views
        snapshot.last_likes = likes
        snapshot.last_comments = comments
        snapshot.update_count = update_count
        snapshot.sum_views_deltas = (snapshot.sum_views_deltas or 0) + views_delta
        snapshot.sum_likes_deltas = (snapshot.sum_likes_deltas or 0) + likes_delta
        snapshot.sum_comments_deltas = (snapshot.sum_comments_deltas or 0) + comments_delta
        snapshot.points_awarded = (snapshot.points_awarded or 0) + total
        snapshot.points_today = (snapshot.points_today or 0) + total
        if flagged:
            snapshot.flagged_for_review = True
            snapshot.flag_reason = flag_reason

        db.session.commit()

        if flagged:
            current_app.logger.warning(
                f"Metric spike on post {post_id} (campaign {campaign_id}, creator {creator_id}): {flag_reason}"
            )
        if total > 0:
            self.check_milestone_rewards(campaign_id, creator_id)

        return {
            'points_awarded': total,
            'flagged': flagged,
            'flag_reason': flag_reason,
            'seeding': seeding,
            'snapshot': snapshot,
        }

    def get_flagged_snapshots(self, campaign_id: Optional[int] = None) -> List[CampaignMetricSnapshot]:
        query = CampaignMetricSnapshot.query.join(
            Campaign, Campaign.id == CampaignMetricSnapshot.campaign_id
        ).filter(
            Campaign.company_id == self.company_id,
            CampaignMetricSnapshot.flagged_for_review.is_(True),
        )
        if campaign_id:
            query = query.filter(CampaignMetricSnapshot.campaign_id == campaign_id)
        return query.order_by(CampaignMetricSnapshot.updated_at.desc()).all()

    def clear_snapshot_flag(self, snapshot_id: int) -> Optional[CampaignMetricSnapshot]:
        snapshot = CampaignMetricSnapshot.query.get(snapshot_id)
        if not snapshot or snapshot.campaign is None or snapshot.campaign.company_id != self.company_id:
            return None
        snapshot.flagged_for_review = False
        snapshot.flag_reason = None
        db.session.commit()
        return snapshot

    # ==================== Milestones ====================

    def get_campaign_points(self, campaign_id: int, creator_id: int) -> int:
        total = db.session.query(func.coalesce(func.sum(PointsLedger.delta_points), 0)).filter(
            PointsLedger.campaign_id == campaign_id,
            PointsLedger.creator_id == creator_id,
        ).scalar()
        return int(total or 0)

    def check_milestone_rewards(
        self,
        campaign_id: int,
        creator_id: int,
        current_points: Optional[int] = None,
    ) -> int:
        """
        Create pending entitlements for every milestone prize the creator reached.

        Returns:
            Number of entitlements created
        """
        if current_points is None:
            current_points = self.get_campaign_points(campaign_id, creator_id)

        prizes = CampaignPrize.query.filter_by(campaign_id=campaign_id, type='milestone') \
            .order_by(CampaignPrize.milestone_points).all()

        created = 0
        for prize in prizes:
            if not prize.milestone_points or current_points < prize.milestone_points:
                continue
            existing = RewardEntitlement.query.filter_by(creator_id=creator_id, prize_id=prize.id).first()
            if existing:
                continue

            db.session.add(RewardEntitlement(
                campaign_id=campaign_id,
                prize_id=prize.id,
                creator_id=creator_id,
                company_id=self.company_id,
                source_type='milestone_reached',
                points_at_time=current_points,
                status='pending',
                reward_kind=prize.reward_kind,
                cash_amount=prize.cash_amount or 0,
            ))
            self.add_ledger_entry(
                creator_id, 0, 'milestone_reached',
                ref_type='prize', ref_id=prize.id, campaign_id=campaign_id,
                notes=f'Milestone {prize.milestone_points} points reached', commit=False,
            )
            created += 1

        if created:
            db.session.commit()
            current_app.logger.info(
                f"Creator {creator_id} unlocked {created} milestone reward(s) in campaign {campaign_id}"
            )
        return created

    # ==================== Leaderboards ====================

    def get_leaderboard(
        self,
        range: str = 'all',
        campaign_id: Optional[int] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """
        Creators ranked by ledger points.

        Args:
            range: 'week' (last 7 days), 'month' (last 30 days) or 'all'
            campaign_id: Restrict to one campaign
            limit: Number of rows
        """
        total = func.sum(PointsLedger.delta_points).label('total_points')
        query = db.session.query(PointsLedger.creator_id, total).filter(
            PointsLedger.company_id == self.company_id
        )
        if campaign_id:
            query = query.filter(PointsLedger.campaign_id == campaign_id)

        days = LEADERBOARD_RANGES.get(range)
        if days:
            query = query.filter(PointsLedger.created_at >= datetime.utcnow() - timedelta(days=days))

        rows = query.group_by(PointsLedger.creator_id) \
            .order_by(total.desc(), PointsLedger.creator_id).limit(limit).all()

        creators = {u.id: u for u in User.query.filter(User.id.in_([r.creator_id for r in rows])).all()} if rows else {}
        memberships = {
            m.creator_id: m for m in BrandCreatorMembership.query.filter(
                BrandCreatorMembership.company_id == self.company_id,
                BrandCreatorMembership.creator_id.in_(list(creators.keys())),
            ).all()
        } if creators else {}

        leaderboard = []
        for index, row in enumerate(rows):
            creator = creators.get(row.creator_id)
            membership = memberships.get(row.creator_id)
            leaderboard.append({
                'rank': index + 1,
                'creator_id': row.creator_id,
                'name': creator.name if creator else None,
                'avatar_url': creator.avatar_url if creator else None,
                'instagram': creator.instagram if creator else None,
                'total_points': int(row.total_points or 0),
                'tier': membership.tier.to_dict() if membership and membership.tier else None,
            })
        return leaderboard

    def get_creator_points_summary(self, creator_id: int) -> Dict[str, Any]:
        """Total, points by event type, brand rank and the 20 latest ledger rows."""
        base = PointsLedger.query.filter_by(company_id=self.company_id, creator_id=creator_id)

        by_event = db.session.query(
            PointsLedger.event_type, func.sum(PointsLedger.delta_points)
        ).filter(
            PointsLedger.company_id == self.company_id,
            PointsLedger.creator_id == creator_id,
        ).group_by(PointsLedger.event_type).all()
        points_by_event_type = {event: int(points or 0) for event, points in by_event if event}

        total = sum(points_by_event_type.values())

        sum_points = func.sum(PointsLedger.delta_points)
        ranking = db.session.query(PointsLedger.creator_id).filter(
            PointsLedger.company_id == self.company_id
        ).group_by(PointsLedger.creator_id).order_by(sum_points.desc(), PointsLedger.creator_id).all()
        ranked_ids = [r.creator_id for r in ranking]
        rank = ranked_ids.index(creator_id) + 1 if creator_id in ranked_ids else 0

        recent = base.order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc()).limit(20).all()

        return {
            'total_points': total,
            'points_by_event_type': points_by_event_type,
            'rank': rank,
            'recent_entries': [e.to_dict() for e in recent],
        }

    def manual_adjustment(self, creator_id: int, delta: int, notes: str, adjusted_by: int) -> PointsLedger:
        """Brand-side correction. Each adjustment is its own ledger event."""
        entry = PointsLedger(
            company_id=self.company_id,
            creator_id=creator_id,
            delta_points=delta,
            event_type='manual_adjustment',
            ref_type='user',
            ref_id=f'{adjusted_by}:{datetime.utcnow().timestamp()}',
            notes=notes,
        )
        db.session.add(entry)
        self.update_creator_points(creator_id, delta, commit=False)
        db.session.commit()
        return entry
