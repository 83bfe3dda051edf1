"""
Notification Service for CreatorConnect.

Stores in-app notifications and pushes them to connected sockets:
- Application accepted/rejected (creator)
- New applicant (company staff)
- Campaign and community invites (creator)
- New conversation messages
- Reward entitlements
"""
import logging
from typing import Optional, List, Iterable

from ..extensions import db
from ..models import Notification, CompanyMember
from ..realtime.hub import manager

logger = logging.getLogger(__name__)


class NotificationService:
    """Create, list and mark notifications. Every new record is pushed live."""

    def __init__(self, hub=None):
        self.hub = hub or manager

    def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        commit: bool = True,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
        )
        db.session.add(notification)
        if commit:
            db.session.commit()
        else:
            db.session.flush()

        self.hub.send_to_user(user_id, notification.to_dict())
        logger.debug(f"Notification {type} -> user {user_id}")
        return notification

    def notify_company_staff(
        self,
        company_id: int,
        type: str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        exclude_user_ids: Iterable[int] = (),
    ) -> List[Notification]:
        """Notify every owner/admin/member of a company (readers excluded)."""
        exclude = set(exclude_user_ids)
        staff = CompanyMember.query.filter(
            CompanyMember.company_id == company_id,
            CompanyMember.role != 'reader',
        ).all()

        created = [
            self.notify(m.user_id, type, title, message, action_url, commit=False)
            for m in staff if m.user_id not in exclude
        ]
        db.session.commit()
        return created

    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def unread_count(self, user_id: int) -> int:
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    def mark_read(self, user_id: int, notification_id: int) -> bool:
        notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if not notification:
            return False
        notification.is_read = True
        db.session.commit()
        return True

    def mark_all_read(self, user_id: int) -> int:
        updated = Notification.query.filter_by(user_id=user_id, is_read=False).update({'is_read': True})
        db.session.commit()
        return updated


notification_service = NotificationService()
