"""
Brand-creator conversations and the Instagram DM mirror.
"""
from datetime import datetime

from ..extensions import db


class Conversation(db.Model):
    """Thread between a company and a creator, optionally scoped to a campaign."""
    __tablename__ = 'conversations'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False, default='brand')  # brand, campaign
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'))
    status = db.Column(db.String(20), default='open')  # open, resolved
    last_message_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship('Company')
    creator = db.relationship('User')
    campaign = db.relationship('Campaign')
    messages = db.relationship('ConversationMessage', backref='conversation', lazy='dynamic',
                               cascade='all, delete-orphan', order_by='ConversationMessage.created_at')

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'company_id': self.company_id,
            'company_name': self.company.name if self.company else None,
            'creator_id': self.creator_id,
            'creator_name': self.creator.name if self.creator else None,
            'campaign_id': self.campaign_id,
            'campaign_title': self.campaign.title if self.campaign else None,
            'status': self.status,
            'last_message_at': self.last_message_at.isoformat() if self.last_message_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ConversationMessage(db.Model):
    __tablename__ = 'conv_messages'

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False, index=True)
    sender_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    body = db.Column(db.Text, nullable=False)
    attachments = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    sender = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'conversation_id': self.conversation_id,
            'sender_user_id': self.sender_user_id,
            'sender_name': self.sender.name if self.sender else None,
            'body': self.body,
            'attachments': self.attachments or [],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class MessageRead(db.Model):
    """Last time a user read a conversation."""
    __tablename__ = 'message_reads'

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    last_read_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('conversation_id', 'user_id', name='uq_message_read'),
    )


class InstagramMessage(db.Model):
    """Instagram DM mirrored from the Graph API or the messaging webhook."""
    __tablename__ = 'instagram_messages'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    conversation_id = db.Column(db.String(100), nullable=False, index=True)
    message_id = db.Column(db.String(150), nullable=False, unique=True)
    sender_id = db.Column(db.String(50))
    sender_username = db.Column(db.String(100))
    recipient_id = db.Column(db.String(50))
    recipient_username = db.Column(db.String(100))
    message_text = db.Column(db.Text)
    message_type = db.Column(db.String(20), default='text')
    attachments = db.Column(db.JSON)
    is_incoming = db.Column(db.Boolean, default=True)
    is_read = db.Column(db.Boolean, default=False)
    sent_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'conversation_id': self.conversation_id,
            'message_id': self.message_id,
            'sender_id': self.sender_id,
            'sender_username': self.sender_username,
            'recipient_id': self.recipient_id,
            'recipient_username': self.recipient_username,
            'message_text': self.message_text,
            'message_type': self.message_type,
            'attachments': self.attachments,
            'is_incoming': self.is_incoming,
            'is_read': self.is_read,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
        }
