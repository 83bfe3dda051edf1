"""
Brand communities: tiers, creator memberships and community invites.
"""
from datetime import datetime

from ..extensions import db


class BrandTierConfig(db.Model):
    """A tier inside one brand's creator community, reached by points."""
    __tablename__ = 'brand_tier_configs'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    tier_name = db.Column(db.String(50), nullable=False)
    min_points = db.Column(db.Integer, nullable=False, default=0)
    color = db.Column(db.String(20), default='#6366f1')
    icon = db.Column(db.String(50), default='star')
    benefits = db.Column(db.JSON, default=dict)
    sort_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'tier_name': self.tier_name,
            'min_points': self.min_points,
            'color': self.color,
            'icon': self.icon,
            'benefits': self.benefits or {},
            'sort_order': self.sort_order,
        }

    def __repr__(self):
        return f'<BrandTierConfig {self.tier_name} >= {self.min_points}>'


class BrandCreatorMembership(db.Model):
    """A creator's membership in a brand community."""
    __tablename__ = 'brand_creator_memberships'

    STATUSES = ('invited', 'active', 'suspended', 'archived')
    SOURCES = ('manual', 'campaign', 'invite', 'self_request')

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='active')
    source = db.Column(db.String(20), default='manual')
    source_campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'))
    tier_id = db.Column(db.Integer, db.ForeignKey('brand_tier_configs.id'))
    points_cache = db.Column(db.Integer, default=0)
    coupon_code = db.Column(db.String(50))
    notes = db.Column(db.Text)
    joined_at = db.Column(db.DateTime)
    last_activity_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = db.relationship('Company')
    creator = db.relationship('User')
    tier = db.relationship('BrandTierConfig')

    __table_args__ = (
        db.UniqueConstraint('company_id', 'creator_id', name='uq_brand_creator_membership'),
    )

    def to_dict(self, include_creator=False, include_company=False):
        data = {
            'id': self.id,
            'company_id': self.company_id,
            'creator_id': self.creator_id,
            'status': self.status,
            'source': self.source,
            'source_campaign_id': self.source_campaign_id,
            'tier': self.tier.to_dict() if self.tier else None,
            'points': self.points_cache or 0,
            'coupon_code': self.coupon_code,
            'joined_at': self.joined_at.isoformat() if self.joined_at else None,
            'last_activity_at': self.last_activity_at.isoformat() if self.last_activity_at else None,
        }
        if include_creator and self.creator:
            data['creator'] = self.creator.to_dict()
        if include_company and self.company:
            data['company'] = self.company.to_dict()
        return data


class CommunityInvite(db.Model):
    """Tokenized invitation to join a brand community."""
    __tablename__ = 'community_invites'

    STATUSES = ('sent', 'opened', 'accepted', 'expired', 'cancelled')

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    email = db.Column(db.String(255))
    instagram_handle = db.Column(db.String(100))
    token = db.Column(db.String(64), unique=True, nullable=False)
    status = db.Column(db.String(20), default='sent')
    expires_at = db.Column(db.DateTime, nullable=False)
    opened_at = db.Column(db.DateTime)
    accepted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship('Company')

    @property
    def is_expired(self):
        return self.expires_at < datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'company_name': self.company.name if self.company else None,
            'creator_id': self.creator_id,
            'email': self.email,
            'instagram_handle': self.instagram_handle,
            'token': self.token,
            'status': self.status,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
