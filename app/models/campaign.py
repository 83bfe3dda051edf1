"""
Campaigns, applications, invites and deliverables.
"""
from datetime import datetime

from ..extensions import db


class Campaign(db.Model):
    """A brand engagement creators apply to."""
    __tablename__ = 'campaigns'

    STATUSES = ('open', 'closed')
    VISIBILITIES = ('public', 'private', 'community_only')
    REWARD_MODES = ('ranking', 'threshold', 'none')

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    requirements = db.Column(db.JSON, default=list)
    deliverable_types = db.Column(db.JSON, default=list)
    budget = db.Column(db.String(100))
    deadline = db.Column(db.Date)
    creators_needed = db.Column(db.Integer, default=1)

    # Targeting
    target_niche = db.Column(db.JSON, default=list)
    target_age_ranges = db.Column(db.JSON, default=list)
    target_regions = db.Column(db.JSON, default=list)
    target_gender = db.Column(db.String(30))
    target_platforms = db.Column(db.JSON, default=list)

    status = db.Column(db.String(20), default='open')
    visibility = db.Column(db.String(20), default='public')

    # Community gating
    min_tier_id = db.Column(db.Integer, db.ForeignKey('brand_tier_configs.id'))
    min_points = db.Column(db.Integer, default=0)
    allowed_tiers = db.Column(db.JSON, default=list)
    reward_mode = db.Column(db.String(20), default='ranking')

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = db.relationship('Company', backref=db.backref('campaigns', lazy='dynamic'))
    applications = db.relationship('Application', backref='campaign', lazy='dynamic',
                                   cascade='all, delete-orphan')
    invites = db.relationship('CampaignInvite', backref='campaign', lazy='dynamic',
                              cascade='all, delete-orphan')

    def to_dict(self, include_company=True):
        data = {
            'id': self.id,
            'company_id': self.company_id,
            'title': self.title,
            'description': self.description,
            'requirements': self.requirements or [],
            'deliverable_types': self.deliverable_types or [],
            'budget': self.budget,
            'deadline': self.deadline.isoformat() if self.deadline else None,
            'creators_needed': self.creators_needed,
            'target_niche': self.target_niche or [],
            'target_age_ranges': self.target_age_ranges or [],
            'target_regions': self.target_regions or [],
            'target_gender': self.target_gender,
            'target_platforms': self.target_platforms or [],
            'status': self.status,
            'visibility': self.visibility,
            'min_tier_id': self.min_tier_id,
            'min_points': self.min_points or 0,
            'reward_mode': self.reward_mode,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_company and self.company:
            data['company'] = {
                'id': self.company.id,
                'name': self.company.name,
                'logo_url': self.company.logo_url,
            }
        return data

    def __repr__(self):
        return f'<Campaign {self.id} {self.title}>'


class Application(db.Model):
    """A creator's application to a campaign."""
    __tablename__ = 'applications'

    STATUSES = ('pending', 'accepted', 'rejected')
    WORKFLOW_STATUSES = ('aceito', 'contrato', 'aguardando_produto', 'producao', 'revisao', 'entregue')
    SEEDING_STATUSES = ('not_required', 'pending', 'sent', 'received')

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    message = db.Column(db.Text)
    status = db.Column(db.String(20), default='pending')
    creator_workflow_status = db.Column(db.String(30))
    seeding_status = db.Column(db.String(20), default='not_required')
    seeding_tracking_code = db.Column(db.String(100))
    applied_at = db.Column(db.DateTime, default=datetime.utcnow)
    responded_at = db.Column(db.DateTime)

    creator = db.relationship('User')
    deliverables = db.relationship('Deliverable', backref='application', lazy='dynamic',
                                   cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('campaign_id', 'creator_id', name='uq_application_campaign_creator'),
    )

    def to_dict(self, include_campaign=False, include_creator=False):
        data = {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'creator_id': self.creator_id,
            'message': self.message,
            'status': self.status,
            'creator_workflow_status': self.creator_workflow_status,
            'seeding_status': self.seeding_status,
            'seeding_tracking_code': self.seeding_tracking_code,
            'applied_at': self.applied_at.isoformat() if self.applied_at else None,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
        }
        if include_campaign and self.campaign:
            data['campaign'] = self.campaign.to_dict()
        if include_creator and self.creator:
            data['creator'] = self.creator.to_dict()
        return data

    def __repr__(self):
        return f'<Application {self.id} campaign={self.campaign_id} creator={self.creator_id} {self.status}>'


class CampaignInvite(db.Model):
    """A company inviting a specific creator to a campaign."""
    __tablename__ = 'campaign_invites'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending')  # pending, accepted, declined
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    responded_at = db.Column(db.DateTime)

    company = db.relationship('Company')
    creator = db.relationship('User')

    __table_args__ = (
        db.UniqueConstraint('campaign_id', 'creator_id', name='uq_campaign_invite'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'campaign_id': self.campaign_id,
            'company_id': self.company_id,
            'creator_id': self.creator_id,
            'status': self.status,
            'campaign': self.campaign.to_dict(include_company=False) if self.campaign else None,
            'company': {
                'id': self.company.id,
                'name': self.company.name,
                'logo_url': self.company.logo_url,
            } if self.company else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
        }


class Deliverable(db.Model):
    """A piece of content delivered for an accepted application."""
    __tablename__ = 'deliverables'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('applications.id'), nullable=False)
    deliverable_type = db.Column(db.String(30), nullable=False)  # post_feed, reels, stories, tiktok, ...
    url = db.Column(db.String(500))
    post_id = db.Column(db.String(100))
    description = db.Column(db.Text)
    status = db.Column(db.String(20), default='submitted')  # submitted, approved, changes_requested
    feedback = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    approved_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'application_id': self.application_id,
            'deliverable_type': self.deliverable_type,
            'url': self.url,
            'post_id': self.post_id,
            'description': self.description,
            'status': self.status,
            'feedback': self.feedback,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
        }
