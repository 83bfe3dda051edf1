"""
Instagram Inbox Service for CreatorConnect.

Mirrors a company's Instagram DMs locally so the inbox works without
hitting the Graph API on every page view:
- Sync conversations and messages from the Graph API, reporting
  `dm_sync_progress` events to the user who started the sync
- Ingest webhook deliveries and push `instagram_dm` events to company staff
- Send replies through the Graph API
"""
import logging
import threading
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

from flask import current_app

from ..extensions import db
from ..models import InstagramMessage, Company, CompanyMember
from ..realtime.hub import manager
from ..utils.exceptions import ValidationError, ExternalServiceError, NotFoundError
from .meta_client import MetaGraphClient

logger = logging.getLogger(__name__)

_active_syncs = set()
_active_syncs_lock = threading.Lock()


def _parse_time(value) -> datetime:
    """Graph timestamps are ISO strings ('2024-05-01T12:00:00+0000') or epoch milliseconds."""
    if isinstance(value, (int, float)):
        return datetime.utcfromtimestamp(value / 1000)
    if isinstance(value, str):
        try:
            return datetime.strptime(value[:19], '%Y-%m-%dT%H:%M:%S')
        except ValueError:
            pass
    return datetime.utcnow()


class InstagramInboxService:
    """DM mirror for one company's Instagram business account."""

    def __init__(self, company: Company, hub=None, client: Optional[MetaGraphClient] = None):
        self.company = company
        self.hub = hub or manager
        self._client = client

    @property
    def client(self) -> MetaGraphClient:
        if self._client is None:
            if not self.company.instagram_access_token or not self.company.instagram_business_id:
                raise ValidationError('Instagram account not connected', 'instagram')
            self._client = MetaGraphClient(
                self.company.instagram_access_token,
                current_app.config.get('META_GRAPH_API_VERSION', 'v21.0'),
            )
        return self._client

    def _staff_ids(self) -> List[int]:
        return [m.user_id for m in CompanyMember.query.filter_by(company_id=self.company.id).all()]

    # ==================== Local inbox ====================

    def save_message(self, data: Dict[str, Any], commit: bool = True) -> Tuple[InstagramMessage, bool]:
        """Insert a message unless its message_id is already stored. Returns (message, created)."""
        existing = InstagramMessage.query.filter_by(message_id=data['message_id']).first()
        if existing:
            return existing, False

        message = InstagramMessage(company_id=self.company.id, **data)
        db.session.add(message)
        if commit:
            db.session.commit()
        return message, True

    def list_conversations(self) -> List[Dict[str, Any]]:
        """Conversations grouped by conversation_id, most recent first."""
        messages = InstagramMessage.query.filter_by(company_id=self.company.id) \
            .order_by(InstagramMessage.sent_at.desc(), InstagramMessage.id.desc()).all()

        conversations = {}
        for message in messages:
            summary = conversations.get(message.conversation_id)
            if summary is None:
                summary = conversations[message.conversation_id] = {
                    'conversation_id': message.conversation_id,
                    'participant_id': None,
                    'participant_username': None,
                    'last_message': message.message_text,
                    'last_message_at': message.sent_at.isoformat() if message.sent_at else None,
                    'last_message_incoming': message.is_incoming,
                    'unread_count': 0,
                    'message_count': 0,
                }
            summary['message_count'] += 1
            if message.is_incoming and not message.is_read:
                summary['unread_count'] += 1
            if summary['participant_id'] is None:
                if message.is_incoming:
                    summary['participant_id'] = message.sender_id
                    summary['participant_username'] = message.sender_username
                else:
                    summary['participant_id'] = message.recipient_id
                    summary['participant_username'] = message.recipient_username
        return list(conversations.values())

    def list_messages(self, conversation_id: str, limit: int = 100) -> List[InstagramMessage]:
        messages = InstagramMessage.query.filter_by(company_id=self.company.id, conversation_id=conversation_id) \
            .order_by(InstagramMessage.sent_at.desc(), InstagramMessage.id.desc()).limit(limit).all()
        return list(reversed(messages))

    def mark_conversation_read(self, conversation_id: str) -> int:
        updated = InstagramMessage.query.filter_by(
            company_id=self.company.id, conversation_id=conversation_id, is_read=False
        ).update({'is_read': True}, synchronize_session=False)
        db.session.commit()
        return updated

    def mark_all_read(self) -> int:
        updated = InstagramMessage.query.filter_by(company_id=self.company.id, is_read=False) \
            .update({'is_read': True}, synchronize_session=False)
        db.session.commit()
        return updated

    def unread_count(self) -> int:
        return InstagramMessage.query.filter_by(company_id=self.company.id, is_incoming=True, is_read=False).count()

    # ==================== Graph API ====================

    def send_direct_message(self, recipient_id: str, text: str, conversation_id: Optional[str] = None) -> InstagramMessage:
        text = (text or '').strip()
        if not recipient_id or not text:
            raise ValidationError('recipient_id and message are required', 'message')

        business_id = self.company.instagram_business_id
        result = self.client.post(
            f'{business_id}/messages',
            json={'recipient': {'id': recipient_id}, 'message': {'text': text}},
        )
        message, _ = self.save_message({
            'conversation_id': conversation_id or f'{business_id}_{recipient_id}',
            'message_id': result.get('message_id') or f'sent_{datetime.utcnow().timestamp()}',
            'sender_id': business_id,
            'sender_username': self.company.instagram,
            'recipient_id': recipient_id,
            'message_text': text,
            'message_type': 'text',
            'is_incoming': False,
            'is_read': True,
            'sent_at': datetime.utcnow(),
        })
        return message

    def _progress(self, user_id: int, page: int, total: int, synced: int, errors: int, done: bool) -> None:
        self.hub.send_event_to_user(user_id, 'dm_sync_progress', {
            'page': page,
            'totalConversations': total,
            'synced': synced,
            'errors': errors,
            'done': done,
        })

    def sync_conversations(self, user_id: int, max_pages: int = 10) -> Dict[str, int]:
        """
        Pull conversations and their messages from the Graph API.

        Progress goes to `user_id` after every page, and a final event with
        done=True is always sent.
        """
        business_id = self.company.instagram_business_id
        page = 0
        total = 0
        synced = 0
        errors = 0
        self._progress(user_id, 0, 0, 0, 0, False)

        try:
            pages = self.client.paginate(
                f'{business_id}/conversations',
                {'platform': 'instagram', 'fields': 'id,updated_time', 'limit': 25},
                max_pages=max_pages,
            )
            for conversations in pages:
                page += 1
                total += len(conversations)
                for conversation in conversations:
                    try:
                        synced += self._sync_conversation(conversation['id'])
                    except ExternalServiceError as e:
                        errors += 1
                        logger.warning(f"Instagram conversation {conversation.get('id')} failed: {e.message}")
                db.session.commit()
                self._progress(user_id, page, total, synced, errors, False)
        except ExternalServiceError as e:
            errors += 1
            logger.error(f"Instagram sync for company {self.company.id} failed: {e.message}")

        self._progress(user_id, page, total, synced, errors, True)
        logger.info(f"Instagram sync company={self.company.id} conversations={total} messages={synced} errors={errors}")
        return {'pages': page, 'conversations': total, 'synced': synced, 'errors': errors}

    def _sync_conversation(self, conversation_id: str) -> int:
        business_id = self.company.instagram_business_id
        body = self.client.get(
            f'{conversation_id}/messages',
            {'fields': 'id,from,to,message,created_time,attachments', 'limit': 50},
        )
        created_count = 0
        for item in body.get('data') or []:
            sender = item.get('from') or {}
            recipients = ((item.get('to') or {}).get('data') or [{}])
            recipient = recipients[0] if recipients else {}
            _, created = self.save_message({
                'conversation_id': conversation_id,
                'message_id': item['id'],
                'sender_id': sender.get('id'),
                'sender_username': sender.get('username'),
                'recipient_id': recipient.get('id'),
                'recipient_username': recipient.get('username'),
                'message_text': item.get('message'),
                'message_type': 'attachment' if item.get('attachments') else 'text',
                'attachments': item.get('attachments'),
                'is_incoming': sender.get('id') != business_id,
                'is_read': sender.get('id') == business_id,
                'sent_at': _parse_time(item.get('created_time')),
            }, commit=False)
            if created:
                created_count += 1
        return created_count

    def start_sync(self, user_id: int) -> str:
        """Run sync_conversations in a background thread. One sync per company at a time."""
        company_id = self.company.id
        with _active_syncs_lock:
            if company_id in _active_syncs:
                return 'already_syncing'
            _active_syncs.add(company_id)

        app = current_app._get_current_object()
        hub = self.hub

        def run():
            try:
                with app.app_context():
                    company = Company.query.get(company_id)
                    InstagramInboxService(company, hub=hub).sync_conversations(user_id)
            except Exception as e:
                logger.exception(f"Background Instagram sync for company {company_id} crashed: {e}")
            finally:
                with _active_syncs_lock:
                    _active_syncs.discard(company_id)

        threading.Thread(target=run, name=f'ig-sync-{company_id}', daemon=True).start()
        return 'sync_started'


def handle_instagram_webhook(payload: Dict[str, Any], hub=None) -> int:
    """
    Store messages delivered by the Instagram webhook.

    Each entry is matched to a company by its Instagram business id. Every
    new message is pushed to the company's staff as an `instagram_dm` event.

    Returns:
        Number of new messages stored
    """
    hub = hub or manager
    stored = 0
    for entry in payload.get('entry') or []:
        company = Company.query.filter_by(instagram_business_id=str(entry.get('id'))).first()
        if not company:
            logger.info(f"Instagram webhook for unknown account {entry.get('id')}")
            continue

        service = InstagramInboxService(company, hub=hub)
        for messaging in entry.get('messaging') or []:
            message = messaging.get('message')
            if not message or not message.get('mid'):
                continue
            sender_id = str((messaging.get('sender') or {}).get('id'))
            recipient_id = str((messaging.get('recipient') or {}).get('id'))
            conversation_id = f'{sender_id}_{recipient_id}'
            message_type = 'attachment' if message.get('attachments') else 'text'

            saved, created = service.save_message({
                'conversation_id': conversation_id,
                'message_id': message['mid'],
                'sender_id': sender_id,
                'recipient_id': recipient_id,
                'message_text': message.get('text'),
                'message_type': message_type,
                'attachments': message.get('attachments'),
                'is_incoming': sender_id != company.instagram_business_id,
                'sent_at': _parse_time(messaging.get('timestamp')),
            })
            if not created:
                continue
            stored += 1
            hub.send_event_to_users(service._staff_ids(), 'instagram_dm', {
                'conversationId': conversation_id,
                'senderId': sender_id,
                'messageText': message.get('text'),
                'messageType': message_type,
                'timestamp': messaging.get('timestamp'),
            })
    return stored


def get_company_inbox(company_id: int) -> InstagramInboxService:
    company = Company.query.get(company_id)
    if not company:
        raise NotFoundError('Company', company_id)
    return InstagramInboxService(company)
