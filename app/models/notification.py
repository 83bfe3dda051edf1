"""
In-app notifications and company-side discovery profiles.
"""
from datetime import datetime

from ..extensions import db


class Notification(db.Model):
    __tablename__ = 'notifications'

    TYPES = (
        'new_campaign', 'application_accepted', 'application_rejected', 'new_applicant',
        'campaign_invite', 'community_invite', 'message', 'reward', 'workflow_update',
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    action_url = db.Column(db.String(300))
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'action_url': self.action_url,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CreatorDiscoveryProfile(db.Model):
    """Instagram profile a company saved while prospecting creators."""
    __tablename__ = 'creator_discovery_profiles'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    instagram_handle = db.Column(db.String(100), nullable=False)
    display_name = db.Column(db.String(200))
    followers = db.Column(db.Integer)
    engagement_rate = db.Column(db.Float)
    bio = db.Column(db.Text)
    category = db.Column(db.String(50))
    profile_pic_url = db.Column(db.String(500))
    linked_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('company_id', 'instagram_handle', name='uq_discovery_profile'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'instagram_handle': self.instagram_handle,
            'display_name': self.display_name,
            'followers': self.followers,
            'engagement_rate': self.engagement_rate,
            'bio': self.bio,
            'category': self.category,
            'profile_pic_url': self.profile_pic_url,
            'linked_user_id': self.linked_user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
