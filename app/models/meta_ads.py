"""
Meta Partnership Ads: creators who authorized a brand to boost their content.
"""
from datetime import datetime

from ..extensions import db


class CreatorAdPartner(db.Model):
    """A creator handle a company runs Partnership Ads with."""
    __tablename__ = 'creator_ad_partners'

    STATUSES = ('pending', 'active', 'expired', 'revoked')

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    instagram_username = db.Column(db.String(100), nullable=False)
    instagram_user_id = db.Column(db.String(50))
    status = db.Column(db.String(20), default='pending')
    permissions = db.Column(db.JSON, default=list)
    meta_partner_id = db.Column(db.String(100))
    auth_link_id = db.Column(db.Integer, db.ForeignKey('creator_auth_links.id'))
    notes = db.Column(db.Text)
    authorized_at = db.Column(db.DateTime)
    expires_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = db.relationship('User')

    __table_args__ = (
        db.UniqueConstraint('company_id', 'instagram_username', name='uq_ad_partner_handle'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'creator_id': self.creator_id,
            'creator_name': self.creator.name if self.creator else None,
            'instagram_username': self.instagram_username,
            'instagram_user_id': self.instagram_user_id,
            'status': self.status,
            'permissions': self.permissions or [],
            'meta_partner_id': self.meta_partner_id,
            'notes': self.notes,
            'authorized_at': self.authorized_at.isoformat() if self.authorized_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CreatorAuthLink(db.Model):
    """One-time link a creator opens to authorize Partnership Ads."""
    __tablename__ = 'creator_auth_links'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    token = db.Column(db.String(64), unique=True, nullable=False)
    label = db.Column(db.String(200))
    is_used = db.Column(db.Boolean, default=False)
    used_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    used_at = db.Column(db.DateTime)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship('Company')

    @property
    def is_expired(self):
        return self.expires_at < datetime.utcnow()

    def to_dict(self, base_url=None):
        data = {
            'id': self.id,
            'company_id': self.company_id,
            'token': self.token,
            'label': self.label,
            'is_used': self.is_used,
            'used_by_user_id': self.used_by_user_id,
            'used_at': self.used_at.isoformat() if self.used_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'is_expired': self.is_expired,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if base_url:
            data['url'] = f"{base_url.rstrip('/')}/partnership/authorize/{self.token}"
        return data
