"""
Community Service for CreatorConnect.

A brand's community is the set of creators with a BrandCreatorMembership.
Creators enter through an accepted application (when the brand has
auto_join_community on), a tokenized community invite, a manual add by
the brand, or their own join request.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from flask import current_app

from ..extensions import db
from ..models import (
    BrandCreatorMembership,
    BrandTierConfig,
    CommunityInvite,
    Company,
    User,
)
from ..utils.exceptions import (
    NotFoundError,
    ValidationError,
    DuplicateError,
    InvalidStatusTransitionError,
    AuthorizationError,
)
from .notification_service import notification_service

logger = logging.getLogger(__name__)

DEFAULT_TIERS = (
    {'tier_name': 'Bronze', 'min_points': 0, 'color': '#cd7f32', 'icon': 'medal', 'sort_order': 0},
    {'tier_name': 'Prata', 'min_points': 500, 'color': '#c0c0c0', 'icon': 'award', 'sort_order': 1},
    {'tier_name': 'Ouro', 'min_points': 2000, 'color': '#ffd700', 'icon': 'trophy', 'sort_order': 2},
)


class CommunityService:
    """Memberships, tiers and community invites of one brand."""

    def __init__(self, company_id: int, notifier=None):
        self.company_id = company_id
        self.notifier = notifier or notification_service

    # ==================== Memberships ====================

    def get_membership(self, creator_id: int) -> Optional[BrandCreatorMembership]:
        return BrandCreatorMembership.query.filter_by(
            company_id=self.company_id, creator_id=creator_id
        ).first()

    def list_members(self, status: Optional[str] = None, tier_id: Optional[int] = None) -> List[BrandCreatorMembership]:
        query = BrandCreatorMembership.query.filter_by(company_id=self.company_id)
        if status:
            query = query.filter_by(status=status)
        if tier_id:
            query = query.filter_by(tier_id=tier_id)
        return query.order_by(BrandCreatorMembership.points_cache.desc(), BrandCreatorMembership.id).all()

    def add_member(
        self,
        creator_id: int,
        source: str = 'manual',
        campaign_id: Optional[int] = None,
        status: str = 'active',
        commit: bool = True,
    ) -> BrandCreatorMembership:
        """Create an active membership, or reactivate an archived one."""
        if source not in BrandCreatorMembership.SOURCES:
            raise ValidationError(f'Invalid membership source: {source}', 'source')

        creator = User.query.get(creator_id)
        if not creator or creator.role != 'creator':
            raise NotFoundError('Creator', creator_id)

        membership = self.get_membership(creator_id)
        if membership:
            if membership.status in ('archived', 'invited'):
                membership.status = status
                membership.joined_at = membership.joined_at or datetime.utcnow()
            if commit:
                db.session.commit()
            return membership

        membership = BrandCreatorMembership(
            company_id=self.company_id,
            creator_id=creator_id,
            status=status,
            source=source,
            source_campaign_id=campaign_id,
            points_cache=0,
            joined_at=datetime.utcnow(),
        )
        lowest = BrandTierConfig.query.filter_by(company_id=self.company_id, min_points=0).first()
        membership.tier_id = lowest.id if lowest else None
        db.session.add(membership)

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        logger.info(f"Creator {creator_id} joined community {self.company_id} via {source}")
        return membership

    def auto_join_from_application(self, creator_id: int, campaign_id: int) -> Optional[BrandCreatorMembership]:
        """Called when an application is accepted."""
        company = Company.query.get(self.company_id)
        if not company or not company.auto_join_community:
            return None
        return self.add_member(creator_id, source='campaign', campaign_id=campaign_id, commit=False)

    def update_membership(self, creator_id: int, data: Dict[str, Any]) -> BrandCreatorMembership:
        membership = self.get_membership(creator_id)
        if not membership:
            raise NotFoundError('Membership', creator_id)

        if 'status' in data:
            if data['status'] not in BrandCreatorMembership.STATUSES:
                raise ValidationError(f"Invalid status: {data['status']}", 'status')
            membership.status = data['status']
        if 'tier_id' in data:
            tier_id = data['tier_id']
            if tier_id is not None:
                tier = BrandTierConfig.query.filter_by(id=tier_id, company_id=self.company_id).first()
                if not tier:
                    raise NotFoundError('Tier', tier_id)
            membership.tier_id = tier_id
        for field in ('coupon_code', 'notes'):
            if field in data:
                setattr(membership, field, data[field])

        db.session.commit()
        return membership

    def remove_member(self, creator_id: int) -> BrandCreatorMembership:
        """Archive the membership. Ledger history stays."""
        membership = self.get_membership(creator_id)
        if not membership:
            raise NotFoundError('Membership', creator_id)
        membership.status = 'archived'
        db.session.commit()
        return membership

    def get_stats(self) -> Dict[str, Any]:
        members = BrandCreatorMembership.query.filter_by(company_id=self.company_id).all()
        by_status = {}
        by_tier = {}
        for m in members:
            by_status[m.status] = by_status.get(m.status, 0) + 1
            if m.status == 'active':
                name = m.tier.tier_name if m.tier else 'Sem tier'
                by_tier[name] = by_tier.get(name, 0) + 1
        return {
            'total': len(members),
            'active': by_status.get('active', 0),
            'by_status': by_status,
            'by_tier': by_tier,
            'pending_invites': CommunityInvite.query.filter_by(company_id=self.company_id, status='sent').count(),
        }

    # ==================== Tiers ====================

    def list_tiers(self) -> List[BrandTierConfig]:
        return BrandTierConfig.query.filter_by(company_id=self.company_id) \
            .order_by(BrandTierConfig.min_points, BrandTierConfig.sort_order).all()

    def ensure_default_tiers(self) -> List[BrandTierConfig]:
        if BrandTierConfig.query.filter_by(company_id=self.company_id).count():
            return self.list_tiers()
        for tier in DEFAULT_TIERS:
            db.session.add(BrandTierConfig(company_id=self.company_id, **tier))
        db.session.commit()
        return self.list_tiers()

    def create_tier(self, data: Dict[str, Any]) -> BrandTierConfig:
        name = (data.get('tier_name') or '').strip()
        if not name:
            raise ValidationError('tier_name is required', 'tier_name')
        try:
            min_points = int(data.get('min_points', 0))
        except (TypeError, ValueError):
            raise ValidationError('min_points must be an integer', 'min_points')
        if min_points < 0:
            raise ValidationError('min_points must be zero or more', 'min_points')

        if BrandTierConfig.query.filter_by(company_id=self.company_id, tier_name=name).first():
            raise DuplicateError('Tier', f'name {name}')

        tier = BrandTierConfig(
            company_id=self.company_id,
            tier_name=name,
            min_points=min_points,
            color=data.get('color') or '#6366f1',
            icon=data.get('icon') or 'star',
            benefits=data.get('benefits') or {},
            sort_order=data.get('sort_order', 0),
        )
        db.session.add(tier)
        db.session.commit()
        self.recalculate_tiers()
        return tier

    def update_tier(self, tier_id: int, data: Dict[str, Any]) -> BrandTierConfig:
        tier = BrandTierConfig.query.filter_by(id=tier_id, company_id=self.company_id).first()
        if not tier:
            raise NotFoundError('Tier', tier_id)
        for field in ('tier_name', 'color', 'icon', 'benefits', 'sort_order'):
            if field in data:
                setattr(tier, field, data[field])
        if 'min_points' in data:
            tier.min_points = max(0, int(data['min_points']))
        db.session.commit()
        self.recalculate_tiers()
        return tier

    def delete_tier(self, tier_id: int) -> None:
        tier = BrandTierConfig.query.filter_by(id=tier_id, company_id=self.company_id).first()
        if not tier:
            raise NotFoundError('Tier', tier_id)
        BrandCreatorMembership.query.filter_by(company_id=self.company_id, tier_id=tier_id) \
            .update({'tier_id': None})
        db.session.delete(tier)
        db.session.commit()
        self.recalculate_tiers()

    def recalculate_tiers(self) -> int:
        """Re-assign every member's tier from points. Returns how many changed."""
        tiers = self.list_tiers()
        changed = 0
        for membership in BrandCreatorMembership.query.filter_by(company_id=self.company_id).all():
            reached = [t for t in tiers if t.min_points <= (membership.points_cache or 0)]
            tier_id = reached[-1].id if reached else None
            if membership.tier_id != tier_id:
                membership.tier_id = tier_id
                changed += 1
        db.session.commit()
        return changed

    # ==================== Invites ====================

    def create_invite(
        self,
        creator_id: Optional[int] = None,
        email: Optional[str] = None,
        instagram_handle: Optional[str] = None,
    ) -> CommunityInvite:
        if not (creator_id or email or instagram_handle):
            raise ValidationError('Informe o criador, e-mail ou Instagram', 'creator_id')

        if creator_id:
            membership = self.get_membership(creator_id)
            if membership and membership.status == 'active':
                raise DuplicateError('Membership', f'creator {creator_id}')
            pending = CommunityInvite.query.filter_by(
                company_id=self.company_id, creator_id=creator_id, status='sent'
            ).first()
            if pending and not pending.is_expired:
                raise DuplicateError('Community invite', f'creator {creator_id}')

        ttl = current_app.config.get('COMMUNITY_INVITE_TTL_DAYS', 14)
        invite = CommunityInvite(
            company_id=self.company_id,
            creator_id=creator_id,
            email=(email or '').strip().lower() or None,
            instagram_handle=(instagram_handle or '').lstrip('@') or None,
            token=secrets.token_urlsafe(32),
            status='sent',
            expires_at=datetime.utcnow() + timedelta(days=ttl),
        )
        db.session.add(invite)
        db.session.commit()

        if creator_id:
            company = Company.query.get(self.company_id)
            self.notifier.notify(
                creator_id,
                'community_invite',
                'Convite para comunidade',
                f'{company.name} convidou você para a comunidade de criadores.',
                action_url=f'/community/invite/{invite.token}',
            )
        return invite

    def list_invites(self) -> List[CommunityInvite]:
        return CommunityInvite.query.filter_by(company_id=self.company_id) \
            .order_by(CommunityInvite.created_at.desc()).all()

    def cancel_invite(self, invite_id: int) -> CommunityInvite:
        invite = CommunityInvite.query.filter_by(id=invite_id, company_id=self.company_id).first()
        if not invite:
            raise NotFoundError('Community invite', invite_id)
        if invite.status not in ('sent', 'opened'):
            raise InvalidStatusTransitionError('community invite', invite.status, 'cancelled')
        invite.status = 'cancelled'
        db.session.commit()
        return invite

    # Token operations are creator-side and not tied to one company

    @staticmethod
    def get_invite_by_token(token: str) -> CommunityInvite:
        invite = CommunityInvite.query.filter_by(token=token).first()
        if not invite:
            raise NotFoundError('Community invite')
        if invite.status in ('sent', 'opened') and invite.is_expired:
            invite.status = 'expired'
            db.session.commit()
        return invite

    @classmethod
    def open_invite(cls, token: str) -> CommunityInvite:
        invite = cls.get_invite_by_token(token)
        if invite.status == 'sent':
            invite.status = 'opened'
            invite.opened_at = datetime.utcnow()
            db.session.commit()
        return invite

    @classmethod
    def accept_invite(cls, token: str, user: User) -> BrandCreatorMembership:
        invite = cls.get_invite_by_token(token)
        if invite.status not in ('sent', 'opened'):
            raise InvalidStatusTransitionError('community invite', invite.status, 'accepted')
        if user.role != 'creator':
            raise AuthorizationError('Only creators can join a community')
        if invite.creator_id and invite.creator_id != user.id:
            raise AuthorizationError('This invite belongs to another creator')

        membership = cls(invite.company_id).add_member(user.id, source='invite', commit=False)
        invite.status = 'accepted'
        invite.accepted_at = datetime.utcnow()
        invite.creator_id = user.id
        db.session.commit()
        return membership

    @staticmethod
    def pending_invites_for_creator(creator_id: int) -> List[CommunityInvite]:
        invites = CommunityInvite.query.filter(
            CommunityInvite.creator_id == creator_id,
            CommunityInvite.status.in_(('sent', 'opened')),
        ).order_by(CommunityInvite.created_at.desc()).all()
        return [i for i in invites if not i.is_expired]

    @staticmethod
    def memberships_for_creator(creator_id: int) -> List[BrandCreatorMembership]:
        return BrandCreatorMembership.query.filter(
            BrandCreatorMembership.creator_id == creator_id,
            BrandCreatorMembership.status != 'archived',
        ).order_by(BrandCreatorMembership.points_cache.desc()).all()

    @staticmethod
    def expire_invites() -> int:
        """Mark every sent/opened invite past expires_at as expired."""
        expired = CommunityInvite.query.filter(
            CommunityInvite.status.in_(('sent', 'opened')),
            CommunityInvite.expires_at < datetime.utcnow(),
        ).update({'status': 'expired'}, synchronize_session=False)
        db.session.commit()
        if expired:
            logger.info(f"Expired {expired} community invite(s)")
        return expired
