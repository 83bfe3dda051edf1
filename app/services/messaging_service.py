"""
Messaging Service for CreatorConnect.

Brand <-> creator conversations. A conversation is either brand-wide
(type 'brand') or scoped to one campaign (type 'campaign'); there is at
most one of each per creator.
"""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..extensions import db
from ..models import Conversation, ConversationMessage, MessageRead, CompanyMember, Campaign, User
from ..realtime.hub import manager
from ..utils.exceptions import NotFoundError, ValidationError, AuthorizationError
from .notification_service import notification_service

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


class MessagingService:
    """Conversations, messages and read markers."""

    def __init__(self, notifier=None, hub=None):
        self.notifier = notifier or notification_service
        self.hub = hub or manager

    def get_or_create_conversation(
        self,
        type: str,
        creator_id: int,
        company_id: int,
        campaign_id: Optional[int] = None,
    ) -> Conversation:
        if type == 'brand':
            query = Conversation.query.filter_by(type='brand', company_id=company_id, creator_id=creator_id)
        elif type == 'campaign' and campaign_id:
            campaign = Campaign.query.filter_by(id=campaign_id, company_id=company_id).first()
            if not campaign:
                raise NotFoundError('Campaign', campaign_id)
            query = Conversation.query.filter_by(type='campaign', campaign_id=campaign_id, creator_id=creator_id)
        else:
            raise ValidationError('Invalid conversation parameters', 'type')

        existing = query.first()
        if existing:
            return existing

        conversation = Conversation(
            type=type,
            company_id=company_id,
            creator_id=creator_id,
            campaign_id=campaign_id if type == 'campaign' else None,
            status='open',
        )
        db.session.add(conversation)
        db.session.commit()
        return conversation

    def is_participant(self, conversation: Conversation, user: User) -> bool:
        if user.role == 'admin' or conversation.creator_id == user.id:
            return True
        return CompanyMember.query.filter_by(company_id=conversation.company_id, user_id=user.id).first() is not None

    def get_conversation(self, conversation_id: int, user: User) -> Conversation:
        conversation = Conversation.query.get(conversation_id)
        if not conversation:
            raise NotFoundError('Conversation', conversation_id)
        if not self.is_participant(conversation, user):
            raise AuthorizationError('Você não participa desta conversa')
        return conversation

    def send_message(self, conversation: Conversation, sender: User, body: str) -> ConversationMessage:
        """Store a message, bump last_message_at and push it to the other side."""
        body = (body or '').strip()
        if not body:
            raise ValidationError('Message body is required', 'body')
        if len(body) > MAX_MESSAGE_LENGTH:
            raise ValidationError('Message is too long', 'body')

        message = ConversationMessage(
            conversation_id=conversation.id,
            sender_user_id=sender.id,
            body=body,
        )
        db.session.add(message)
        conversation.last_message_at = datetime.utcnow()
        if conversation.status == 'resolved':
            conversation.status = 'open'
        db.session.commit()

        self.mark_as_read(conversation.id, sender.id)

        payload = message.to_dict()
        preview = body if len(body) <= 80 else body[:77] + '...'
        if sender.id == conversation.creator_id:
            staff_ids = [
                m.user_id for m in CompanyMember.query.filter_by(company_id=conversation.company_id).all()
            ]
            self.hub.send_event_to_users(staff_ids, 'new_message', payload)
            self.notifier.notify_company_staff(
                conversation.company_id, 'message', f'Nova mensagem de {sender.name}', preview,
                action_url=f'/messages/{conversation.id}',
            )
        else:
            self.hub.send_event_to_user(conversation.creator_id, 'new_message', payload)
            self.notifier.notify(
                conversation.creator_id, 'message', f'Nova mensagem de {conversation.company.name}', preview,
                action_url=f'/messages/{conversation.id}',
            )
        return message

    def list_messages(self, conversation: Conversation, limit: int = 50, offset: int = 0) -> List[ConversationMessage]:
        """Oldest first within the requested page of most recent messages."""
        messages = ConversationMessage.query.filter_by(conversation_id=conversation.id) \
            .order_by(ConversationMessage.created_at.desc(), ConversationMessage.id.desc()) \
            .limit(limit).offset(offset).all()
        return list(reversed(messages))

    def mark_as_read(self, conversation_id: int, user_id: int) -> MessageRead:
        marker = MessageRead.query.filter_by(conversation_id=conversation_id, user_id=user_id).first()
        if marker:
            marker.last_read_at = datetime.utcnow()
        else:
            marker = MessageRead(conversation_id=conversation_id, user_id=user_id, last_read_at=datetime.utcnow())
            db.session.add(marker)
        db.session.commit()
        return marker

    def conversation_unread_count(self, conversation_id: int, user_id: int) -> int:
        marker = MessageRead.query.filter_by(conversation_id=conversation_id, user_id=user_id).first()
        query = ConversationMessage.query.filter(
            ConversationMessage.conversation_id == conversation_id,
            ConversationMessage.sender_user_id != user_id,
        )
        if marker:
            query = query.filter(ConversationMessage.created_at > marker.last_read_at)
        return query.count()

    def set_status(self, conversation: Conversation, status: str) -> Conversation:
        if status not in ('open', 'resolved'):
            raise ValidationError(f'Invalid status: {status}', 'status')
        conversation.status = status
        db.session.commit()
        return conversation

    def _summaries(self, conversations: List[Conversation], user_id: int) -> List[Dict[str, Any]]:
        results = []
        for conversation in conversations:
            last = conversation.messages.order_by(
                ConversationMessage.created_at.desc(), ConversationMessage.id.desc()
            ).first()
            data = conversation.to_dict()
            data['last_message'] = {
                'body': last.body,
                'created_at': last.created_at.isoformat(),
            } if last else None
            data['unread_count'] = self.conversation_unread_count(conversation.id, user_id)
            results.append(data)
        return results

    def list_for_creator(self, creator_id: int, type: Optional[str] = None) -> List[Dict[str, Any]]:
        query = Conversation.query.filter_by(creator_id=creator_id)
        if type:
            query = query.filter_by(type=type)
        conversations = query.order_by(Conversation.last_message_at.desc(), Conversation.id.desc()).all()
        return self._summaries(conversations, creator_id)

    def list_for_company(self, company_id: int, user_id: int, type: Optional[str] = None) -> List[Dict[str, Any]]:
        query = Conversation.query.filter_by(company_id=company_id)
        if type:
            query = query.filter_by(type=type)
        conversations = query.order_by(Conversation.last_message_at.desc(), Conversation.id.desc()).all()
        return self._summaries(conversations, user_id)

    def unread_count(self, user: User, company_id: Optional[int] = None) -> int:
        """Number of conversations with unread messages for the user."""
        if company_id:
            conversations = Conversation.query.filter_by(company_id=company_id).all()
        else:
            conversations = Conversation.query.filter_by(creator_id=user.id).all()
        return sum(1 for c in conversations if self.conversation_unread_count(c.id, user.id) > 0)


messaging_service = MessagingService()
