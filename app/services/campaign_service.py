"""
Campaign Service for CreatorConnect.

Campaign lifecycle on the brand side (create, update, delete, invite,
review applications, approve deliverables) and on the creator side
(apply, respond to invites, list applications).
"""
import logging
from datetime import datetime, date
from typing import Optional, List, Dict, Any

from sqlalchemy import or_

from ..extensions import db
from ..models import (
    Campaign,
    Application,
    CampaignInvite,
    Deliverable,
    CampaignPointsRules,
    CampaignPrize,
    RewardEntitlement,
    CampaignMetricSnapshot,
    PointsLedger,
    Conversation,
    WalletTransaction,
    SalesTracking,
    BrandCreatorMembership,
    BrandTierConfig,
    User,
)
from ..utils.exceptions import (
    NotFoundError,
    CampaignNotFoundError,
    ValidationError,
    DuplicateError,
    InvalidStatusTransitionError,
    AuthorizationError,
    NotQualifiedError,
)
from ..utils.validators import parse_date
from .matching_service import is_creator_qualified, get_qualified_creators_for_campaign
from .notification_service import notification_service
from .community_service import CommunityService
from .points_service import PointsService

logger = logging.getLogger(__name__)

LIST_FIELDS = (
    'requirements', 'deliverable_types', 'target_niche', 'target_age_ranges',
    'target_regions', 'target_platforms', 'allowed_tiers',
)
SCALAR_FIELDS = ('budget', 'target_gender', 'min_points', 'min_tier_id', 'creators_needed')

DELIVERABLE_EVENTS = {
    'post_feed': 'post_created',
    'reels': 'reel_created',
    'stories': 'story_created',
}


class CampaignService:
    """Campaigns, applications, invites and deliverables."""

    def __init__(self, notifier=None):
        self.notifier = notifier or notification_service

    # ==================== Campaigns ====================

    def get_campaign(self, campaign_id: int) -> Campaign:
        campaign = Campaign.query.get(campaign_id)
        if not campaign:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def get_company_campaign(self, company_id: int, campaign_id: int) -> Campaign:
        campaign = Campaign.query.filter_by(id=campaign_id, company_id=company_id).first()
        if not campaign:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def list_campaigns(
        self,
        company_id: Optional[int] = None,
        status: Optional[str] = None,
        visibility: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Campaign]:
        query = Campaign.query
        if company_id:
            query = query.filter_by(company_id=company_id)
        if status:
            query = query.filter_by(status=status)
        if visibility:
            query = query.filter_by(visibility=visibility)
        if search:
            like = f'%{search.strip()}%'
            query = query.filter(or_(Campaign.title.ilike(like), Campaign.description.ilike(like)))
        return query.order_by(Campaign.created_at.desc(), Campaign.id.desc()).all()

    def _apply_fields(self, campaign: Campaign, data: Dict[str, Any]) -> None:
        for field in ('title', 'description'):
            if field in data:
                value = (data.get(field) or '').strip()
                if not value:
                    raise ValidationError(f'{field} is required', field)
                setattr(campaign, field, value)

        for field in LIST_FIELDS:
            if field in data:
                value = data[field] or []
                if not isinstance(value, list):
                    raise ValidationError(f'{field} must be a list', field)
                setattr(campaign, field, value)

        for field in SCALAR_FIELDS:
            if field in data:
                setattr(campaign, field, data[field])

        if 'deadline' in data:
            try:
                campaign.deadline = parse_date(data['deadline'])
            except ValueError:
                raise ValidationError('deadline must be YYYY-MM-DD', 'deadline')

        if 'status' in data:
            if data['status'] not in Campaign.STATUSES:
                raise ValidationError(f"Invalid status: {data['status']}", 'status')
            campaign.status = data['status']
        if 'visibility' in data:
            if data['visibility'] not in Campaign.VISIBILITIES:
                raise ValidationError(f"Invalid visibility: {data['visibility']}", 'visibility')
            campaign.visibility = data['visibility']
        if 'reward_mode' in data:
            if data['reward_mode'] not in Campaign.REWARD_MODES:
                raise ValidationError(f"Invalid reward mode: {data['reward_mode']}", 'reward_mode')
            campaign.reward_mode = data['reward_mode']

    def create_campaign(self, company_id: int, user_id: int, data: Dict[str, Any]) -> Campaign:
        """Create a campaign and notify every qualified creator when it is public."""
        for field in ('title', 'description'):
            if not (data.get(field) or '').strip():
                raise ValidationError(f'{field} is required', field)

        campaign = Campaign(company_id=company_id, created_by_user_id=user_id, status='open', visibility='public')
        self._apply_fields(campaign, data)
        db.session.add(campaign)
        db.session.flush()

        if data.get('points_rules') is not None:
            db.session.add(CampaignPointsRules(
                campaign_id=campaign.id,
                rules=data['points_rules'] or {},
                overrides_brand=bool(data.get('overrides_brand')),
            ))
        for prize in data.get('prizes') or []:
            self._add_prize(campaign, prize)

        db.session.commit()
        logger.info(f"Campaign {campaign.id} created by company {company_id}")

        self.broadcast_new_campaign(campaign)
        return campaign

    def broadcast_new_campaign(self, campaign: Campaign) -> int:
        creators = get_qualified_creators_for_campaign(campaign)
        for creator in creators:
            self.notifier.notify(
                creator.id,
                'new_campaign',
                'Nova campanha disponível',
                f'{campaign.company.name}: {campaign.title}',
                action_url=f'/campaign/{campaign.id}',
                commit=False,
            )
        db.session.commit()
        if creators:
            logger.info(f"Campaign {campaign.id} broadcast to {len(creators)} creator(s)")
        return len(creators)

    def update_campaign(self, campaign: Campaign, data: Dict[str, Any]) -> Campaign:
        self._apply_fields(campaign, data)
        db.session.commit()
        return campaign

    def delete_campaign(self, campaign: Campaign) -> None:
        """
        Delete a campaign with its applications, deliverables and invites.

        Gamification rows of the campaign go too. Ledger history, wallet
        movements, sales and conversations are kept and detached.
        """
        campaign_id = campaign.id
        RewardEntitlement.query.filter_by(campaign_id=campaign_id).delete(synchronize_session=False)
        CampaignPrize.query.filter_by(campaign_id=campaign_id).delete(synchronize_session=False)
        CampaignPointsRules.query.filter_by(campaign_id=campaign_id).delete(synchronize_session=False)
        CampaignMetricSnapshot.query.filter_by(campaign_id=campaign_id).delete(synchronize_session=False)
        PointsLedger.query.filter_by(campaign_id=campaign_id).update({'campaign_id': None}, synchronize_session=False)
        Conversation.query.filter_by(campaign_id=campaign_id).update({'campaign_id': None}, synchronize_session=False)
        SalesTracking.query.filter_by(campaign_id=campaign_id).update({'campaign_id': None}, synchronize_session=False)
        WalletTransaction.query.filter_by(related_campaign_id=campaign_id).update(
            {'related_campaign_id': None, 'related_application_id': None}, synchronize_session=False
        )
        BrandCreatorMembership.query.filter_by(source_campaign_id=campaign_id).update(
            {'source_campaign_id': None}, synchronize_session=False
        )

        db.session.delete(campaign)
        db.session.commit()
        logger.info(f"Campaign {campaign_id} deleted")

    # ==================== Prizes ====================

    def _add_prize(self, campaign: Campaign, data: Dict[str, Any]) -> CampaignPrize:
        prize_type = data.get('type')
        if prize_type not in ('ranking_place', 'milestone'):
            raise ValidationError('Prize type must be ranking_place or milestone', 'type')
        if prize_type == 'ranking_place' and not data.get('rank_position'):
            raise ValidationError('rank_position is required', 'rank_position')
        if prize_type == 'milestone' and not data.get('milestone_points'):
            raise ValidationError('milestone_points is required', 'milestone_points')
        reward_kind = data.get('reward_kind', 'cash')
        if reward_kind not in ('cash', 'product', 'both', 'none'):
            raise ValidationError(f'Invalid reward kind: {reward_kind}', 'reward_kind')

        prize = CampaignPrize(
            campaign_id=campaign.id,
            type=prize_type,
            rank_position=data.get('rank_position'),
            milestone_points=data.get('milestone_points'),
            reward_kind=reward_kind,
            cash_amount=int(data.get('cash_amount') or 0),
            product_sku=data.get('product_sku'),
            product_description=data.get('product_description'),
            notes=data.get('notes'),
        )
        db.session.add(prize)
        return prize

    def add_prize(self, campaign: Campaign, data: Dict[str, Any]) -> CampaignPrize:
        prize = self._add_prize(campaign, data)
        db.session.commit()
        return prize

    def list_prizes(self, campaign: Campaign) -> List[CampaignPrize]:
        return CampaignPrize.query.filter_by(campaign_id=campaign.id) \
            .order_by(CampaignPrize.type, CampaignPrize.rank_position, CampaignPrize.milestone_points).all()

    def delete_prize(self, campaign: Campaign, prize_id: int) -> None:
        prize = CampaignPrize.query.filter_by(id=prize_id, campaign_id=campaign.id).first()
        if not prize:
            raise NotFoundError('Prize', prize_id)
        if RewardEntitlement.query.filter_by(prize_id=prize.id).count():
            raise InvalidStatusTransitionError('prize', 'awarded', 'deleted')
        db.session.delete(prize)
        db.session.commit()

    # ==================== Applications ====================

    def _check_community_gate(self, campaign: Campaign, creator: User) -> None:
        if campaign.visibility != 'community_only':
            return
        membership = BrandCreatorMembership.query.filter_by(
            company_id=campaign.company_id, creator_id=creator.id, status='active'
        ).first()
        if not membership:
            raise NotQualifiedError('Campanha exclusiva para membros da comunidade')
        if (membership.points_cache or 0) < (campaign.min_points or 0):
            raise NotQualifiedError('Pontos insuficientes para esta campanha')
        if campaign.min_tier_id:
            required = BrandTierConfig.query.get(campaign.min_tier_id)
            current = membership.tier
            if required and (not current or current.min_points < required.min_points):
                raise NotQualifiedError('Tier insuficiente para esta campanha')

    def apply(self, campaign: Campaign, creator: User, message: Optional[str] = None) -> Application:
        """
        Submit a creator's application.

        Raises:
            InvalidStatusTransitionError: campaign is closed
            NotQualifiedError: creator is outside the campaign targeting
            DuplicateError: creator already applied
        """
        if creator.role != 'creator':
            raise AuthorizationError('Only creators can apply to campaigns')
        if campaign.status != 'open':
            raise InvalidStatusTransitionError('campaign', campaign.status, 'apply')
        if campaign.visibility == 'private':
            invited = CampaignInvite.query.filter_by(campaign_id=campaign.id, creator_id=creator.id).first()
            if not invited:
                raise NotQualifiedError('Campanha disponível apenas para convidados')
        self._check_community_gate(campaign, creator)
        if not is_creator_qualified(creator, campaign):
            raise NotQualifiedError()
        if Application.query.filter_by(campaign_id=campaign.id, creator_id=creator.id).first():
            raise DuplicateError('Application', f'campaign {campaign.id}')

        application = Application(
            campaign_id=campaign.id,
            creator_id=creator.id,
            message=message,
            status='pending',
        )
        db.session.add(application)
        db.session.commit()

        self.notifier.notify_company_staff(
            campaign.company_id,
            'new_applicant',
            'Nova candidatura',
            f'{creator.name} se candidatou para {campaign.title}',
            action_url=f'/campaign/{campaign.id}/manage',
        )
        return application

    def get_application(self, application_id: int) -> Application:
        application = Application.query.get(application_id)
        if not application:
            raise NotFoundError('Application', application_id)
        return application

    def list_creator_applications(self, creator_id: int, status: Optional[str] = None) -> List[Application]:
        query = Application.query.filter_by(creator_id=creator_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Application.applied_at.desc(), Application.id.desc()).all()

    def list_campaign_applications(self, campaign: Campaign, status: Optional[str] = None) -> List[Application]:
        query = campaign.applications
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Application.applied_at.desc(), Application.id.desc()).all()

    def _accept(self, application: Application, commit: bool = True) -> Application:
        application.status = 'accepted'
        application.creator_workflow_status = 'aceito'
        application.responded_at = datetime.utcnow()
        CommunityService(application.campaign.company_id).auto_join_from_application(
            application.creator_id, application.campaign_id
        )
        if commit:
            db.session.commit()
        return application

    def update_application_status(self, application: Application, status: str) -> Application:
        """Accept or reject a pending application and tell the creator."""
        if status not in ('accepted', 'rejected'):
            raise ValidationError(f'Invalid status: {status}', 'status')
        if application.status != 'pending':
            raise InvalidStatusTransitionError('application', application.status, status)

        campaign = application.campaign
        if status == 'accepted':
            self._accept(application)
            self.notifier.notify(
                application.creator_id,
                'application_accepted',
                'Candidatura aprovada!',
                f'Você foi aceito na campanha {campaign.title}',
                action_url=f'/campaign/{campaign.id}/workspace',
            )
        else:
            application.status = 'rejected'
            application.responded_at = datetime.utcnow()
            db.session.commit()
            self.notifier.notify(
                application.creator_id,
                'application_rejected',
                'Candidatura não aprovada',
                f'Sua candidatura para {campaign.title} não foi aprovada',
                action_url='/applications',
            )
        return application

    def update_workflow_status(self, application: Application, workflow_status: str) -> Application:
        if application.status != 'accepted':
            raise InvalidStatusTransitionError('application', application.status, workflow_status)
        if workflow_status not in Application.WORKFLOW_STATUSES:
            raise ValidationError(f'Invalid workflow status: {workflow_status}', 'creator_workflow_status')
        application.creator_workflow_status = workflow_status
        db.session.commit()
        return application

    def update_seeding(self, application: Application, seeding_status: str, tracking_code: Optional[str] = None) -> Application:
        if seeding_status not in Application.SEEDING_STATUSES:
            raise ValidationError(f'Invalid seeding status: {seeding_status}', 'seeding_status')
        application.seeding_status = seeding_status
        if tracking_code is not None:
            application.seeding_tracking_code = tracking_code
        if seeding_status == 'sent' and application.creator_workflow_status in ('aceito', 'contrato'):
            application.creator_workflow_status = 'aguardando_produto'
        db.session.commit()
        return application

    # ==================== Deliverables ====================

    def submit_deliverable(self, application: Application, creator: User, data: Dict[str, Any]) -> Deliverable:
        if application.creator_id != creator.id:
            raise AuthorizationError()
        if application.status != 'accepted':
            raise InvalidStatusTransitionError('application', application.status, 'deliver')
        deliverable_type = (data.get('deliverable_type') or '').strip()
        if not deliverable_type:
            raise ValidationError('deliverable_type is required', 'deliverable_type')

        deliverable = Deliverable(
            application_id=application.id,
            deliverable_type=deliverable_type,
            url=data.get('url'),
            post_id=data.get('post_id'),
            description=data.get('description'),
            status='submitted',
        )
        db.session.add(deliverable)
        application.creator_workflow_status = 'revisao'
        db.session.commit()
        return deliverable

    def review_deliverable(
        self,
        application: Application,
        deliverable_id: int,
        approved: bool,
        feedback: Optional[str] = None,
    ) -> Deliverable:
        """
        Approve or send back a deliverable.

        Approval awards the content event and delivery points, plus the
        on-time bonus when the campaign deadline has not passed.
        """
        deliverable = application.deliverables.filter_by(id=deliverable_id).first()
        if not deliverable:
            raise NotFoundError('Deliverable', deliverable_id)
        if deliverable.status == 'approved':
            raise InvalidStatusTransitionError('deliverable', 'approved', 'approved')

        deliverable.feedback = feedback
        if not approved:
            deliverable.status = 'changes_requested'
            application.creator_workflow_status = 'producao'
            db.session.commit()
            return deliverable

        deliverable.status = 'approved'
        deliverable.approved_at = datetime.utcnow()
        application.creator_workflow_status = 'entregue'
        db.session.commit()

        campaign = application.campaign
        points = PointsService(campaign.company_id)
        event = DELIVERABLE_EVENTS.get(deliverable.deliverable_type)
        if event:
            points.record_event(application.creator_id, event, 'deliverable', deliverable.id, campaign_id=campaign.id)
        points.record_event(application.creator_id, 'delivery_approved', 'deliverable', deliverable.id, campaign_id=campaign.id)
        if campaign.deadline and date.today() <= campaign.deadline:
            points.record_event(application.creator_id, 'ontime_bonus', 'deliverable', deliverable.id, campaign_id=campaign.id)
        return deliverable

    # ==================== Invites ====================

    def invite_creator(self, campaign: Campaign, creator_id: int) -> CampaignInvite:
        creator = User.query.get(creator_id)
        if not creator or creator.role != 'creator':
            raise NotFoundError('Creator', creator_id)
        if CampaignInvite.query.filter_by(campaign_id=campaign.id, creator_id=creator_id).first():
            raise DuplicateError('Invite', f'creator {creator_id}')
        if Application.query.filter_by(campaign_id=campaign.id, creator_id=creator_id).first():
            raise DuplicateError('Application', f'creator {creator_id}')

        invite = CampaignInvite(
            campaign_id=campaign.id,
            company_id=campaign.company_id,
            creator_id=creator_id,
            status='pending',
        )
        db.session.add(invite)
        db.session.commit()

        self.notifier.notify(
            creator_id,
            'campaign_invite',
            'Convite para campanha',
            f'{campaign.company.name} convidou você para {campaign.title}',
            action_url='/invites',
        )
        return invite

    def _get_creator_invite(self, invite_id: int, creator: User) -> CampaignInvite:
        invite = CampaignInvite.query.get(invite_id)
        if not invite or invite.creator_id != creator.id:
            raise NotFoundError('Invite', invite_id)
        if invite.status != 'pending':
            raise InvalidStatusTransitionError('invite', invite.status, 'responded')
        return invite

    def accept_invite(self, invite_id: int, creator: User) -> Dict[str, Any]:
        """Accepting an invite joins the campaign with an accepted application."""
        invite = self._get_creator_invite(invite_id, creator)
        campaign = invite.campaign
        if campaign.status != 'open':
            raise InvalidStatusTransitionError('campaign', campaign.status, 'accept invite')

        application = Application.query.filter_by(campaign_id=campaign.id, creator_id=creator.id).first()
        if not application:
            application = Application(
                campaign_id=campaign.id,
                creator_id=creator.id,
                message='Convite aceito',
                status='pending',
            )
            db.session.add(application)
            db.session.flush()
        if application.status != 'accepted':
            self._accept(application, commit=False)

        invite.status = 'accepted'
        invite.responded_at = datetime.utcnow()
        db.session.commit()

        self.notifier.notify_company_staff(
            campaign.company_id,
            'new_applicant',
            'Convite aceito',
            f'{creator.name} aceitou o convite para {campaign.title}',
            action_url=f'/campaign/{campaign.id}/manage',
        )
        return {'invite': invite, 'application': application}

    def decline_invite(self, invite_id: int, creator: User) -> CampaignInvite:
        invite = self._get_creator_invite(invite_id, creator)
        invite.status = 'declined'
        invite.responded_at = datetime.utcnow()
        db.session.commit()
        return invite

    def list_invites(self, creator_id: int) -> List[CampaignInvite]:
        return CampaignInvite.query.filter_by(creator_id=creator_id) \
            .order_by(CampaignInvite.created_at.desc(), CampaignInvite.id.desc()).all()

    def _pending_invites_query(self, creator_id: int):
        return CampaignInvite.query.join(Campaign, CampaignInvite.campaign_id == Campaign.id).filter(
            CampaignInvite.creator_id == creator_id,
            CampaignInvite.status == 'pending',
            Campaign.status == 'open',
        )

    def pending_invites(self, creator_id: int) -> List[CampaignInvite]:
        """Pending invites to campaigns that are still open."""
        return self._pending_invites_query(creator_id) \
            .order_by(CampaignInvite.created_at.desc(), CampaignInvite.id.desc()).all()

    def pending_invite_count(self, creator_id: int) -> int:
        return self._pending_invites_query(creator_id).count()

    def list_campaign_invites(self, campaign: Campaign) -> List[CampaignInvite]:
        return campaign.invites.order_by(CampaignInvite.created_at.desc()).all()


campaign_service = CampaignService()
