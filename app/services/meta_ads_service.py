"""
Meta Ads Service for CreatorConnect.

Partnership Ads bookkeeping for a company:
- Creator ad partners (handles the brand may sponsor)
- One-time auth links a creator opens to join as a partner
- Partnership permission requests and status sync through the Graph API
- Expiry of partners and links past `expires_at`

Usage:
    service = MetaAdsService(company_id)
    link = service.create_auth_link(label='Verão 2025')
    partner = service.consume_auth_link(link.token, creator_user)
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from flask import current_app

from ..extensions import db
from ..models import Company, CreatorAdPartner, CreatorAuthLink, User
from ..utils.exceptions import (
    NotFoundError,
    ValidationError,
    DuplicateError,
    InvalidStatusTransitionError,
    AuthorizationError,
)
from .meta_client import MetaGraphClient

logger = logging.getLogger(__name__)

# Graph permission status -> local partner status
META_STATUS_MAP = {
    'APPROVED': 'active',
    'PENDING': 'pending',
    'DECLINED': 'revoked',
    'REVOKED': 'revoked',
    'EXPIRED': 'expired',
}


def _clean_handle(value: Optional[str]) -> str:
    return (value or '').strip().lstrip('@').lower()


def _parse_expiry(value) -> Optional[datetime]:
    if not value or isinstance(value, datetime):
        return value or None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        raise ValidationError('Invalid expires_at', 'expires_at')


class MetaAdsService:
    """Ad partners and auth links for one company."""

    def __init__(self, company_id: int, client: Optional[MetaGraphClient] = None):
        self.company_id = company_id
        self._client = client

    @property
    def company(self) -> Company:
        company = Company.query.get(self.company_id)
        if not company:
            raise NotFoundError('Company', self.company_id)
        return company

    @property
    def client(self) -> MetaGraphClient:
        if self._client is None:
            company = self.company
            token = company.instagram_access_token or current_app.config.get('META_ACCESS_TOKEN')
            self._client = MetaGraphClient(token, current_app.config.get('META_GRAPH_API_VERSION', 'v21.0'))
        return self._client

    # ==================== Partners ====================

    def get_partner(self, partner_id: int) -> CreatorAdPartner:
        partner = CreatorAdPartner.query.filter_by(id=partner_id, company_id=self.company_id).first()
        if not partner:
            raise NotFoundError('Partner', partner_id)
        return partner

    def list_partners(self, status: Optional[str] = None) -> List[CreatorAdPartner]:
        query = CreatorAdPartner.query.filter_by(company_id=self.company_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(CreatorAdPartner.created_at.desc()).all()

    def partner_summary(self) -> Dict[str, int]:
        partners = CreatorAdPartner.query.filter_by(company_id=self.company_id).all()
        summary = {'total': len(partners)}
        for status in CreatorAdPartner.STATUSES:
            summary[status] = sum(1 for p in partners if p.status == status)
        return summary

    def _set_status(self, partner: CreatorAdPartner, status: str) -> None:
        if status not in CreatorAdPartner.STATUSES:
            raise ValidationError(f'Invalid status: {status}', 'status')
        if status == 'active' and partner.status != 'active':
            partner.authorized_at = datetime.utcnow()
        partner.status = status

    def add_partner(self, data: Dict[str, Any]) -> CreatorAdPartner:
        handle = _clean_handle(data.get('instagram_username'))
        if not handle:
            raise ValidationError('Instagram username required', 'instagram_username')
        if CreatorAdPartner.query.filter_by(company_id=self.company_id, instagram_username=handle).first():
            raise DuplicateError('Partner', handle)

        creator_id = data.get('creator_id')
        if creator_id:
            creator = User.query.get(creator_id)
            if not creator or creator.role != 'creator':
                raise NotFoundError('Creator', creator_id)

        partner = CreatorAdPartner(
            company_id=self.company_id,
            creator_id=creator_id,
            instagram_username=handle,
            instagram_user_id=data.get('instagram_user_id'),
            permissions=data.get('permissions') or [],
            notes=data.get('notes'),
            status='pending',
        )
        self._set_status(partner, data.get('status') or 'pending')
        partner.expires_at = _parse_expiry(data.get('expires_at'))
        db.session.add(partner)
        db.session.commit()
        logger.info(f"Ad partner @{handle} added to company {self.company_id}")
        return partner

    def update_partner(self, partner_id: int, data: Dict[str, Any]) -> CreatorAdPartner:
        partner = self.get_partner(partner_id)
        if 'status' in data:
            self._set_status(partner, data['status'])
        for field in ('instagram_user_id', 'permissions', 'notes', 'meta_partner_id'):
            if field in data:
                setattr(partner, field, data[field])
        if 'expires_at' in data:
            partner.expires_at = _parse_expiry(data['expires_at'])
        db.session.commit()
        return partner

    def delete_partner(self, partner_id: int) -> None:
        partner = self.get_partner(partner_id)
        db.session.delete(partner)
        db.session.commit()

    # ==================== Auth links ====================

    def create_auth_link(self, label: Optional[str] = None) -> CreatorAuthLink:
        ttl = current_app.config.get('CREATOR_AUTH_LINK_TTL_DAYS', 7)
        link = CreatorAuthLink(
            company_id=self.company_id,
            token=secrets.token_hex(32),
            label=label,
            expires_at=datetime.utcnow() + timedelta(days=ttl),
        )
        db.session.add(link)
        db.session.commit()
        return link

    def list_auth_links(self) -> List[CreatorAuthLink]:
        return CreatorAuthLink.query.filter_by(company_id=self.company_id) \
            .order_by(CreatorAuthLink.created_at.desc()).all()

    @staticmethod
    def get_auth_link(token: str) -> CreatorAuthLink:
        link = CreatorAuthLink.query.filter_by(token=token).first()
        if not link:
            raise NotFoundError('Auth link')
        return link

    @staticmethod
    def consume_auth_link(token: str, creator: User) -> CreatorAdPartner:
        """
        Mark the link used and register the creator as a pending partner of
        the link's company. An existing partner for the same handle is linked
        to the creator instead of duplicated.
        """
        link = MetaAdsService.get_auth_link(token)
        if link.is_used:
            raise InvalidStatusTransitionError('auth link', 'used', 'used')
        if link.is_expired:
            raise InvalidStatusTransitionError('auth link', 'expired', 'used')
        if creator.role != 'creator':
            raise AuthorizationError('Apenas criadores podem autorizar anúncios')
        handle = _clean_handle(creator.instagram)
        if not handle:
            raise ValidationError('Conecte seu Instagram antes de autorizar', 'instagram')

        partner = CreatorAdPartner.query.filter_by(company_id=link.company_id, instagram_username=handle).first()
        if not partner:
            partner = CreatorAdPartner(company_id=link.company_id, instagram_username=handle, status='pending')
            db.session.add(partner)
        partner.creator_id = creator.id
        partner.instagram_user_id = partner.instagram_user_id or creator.instagram_user_id
        partner.auth_link_id = link.id

        link.is_used = True
        link.used_by_user_id = creator.id
        link.used_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Auth link {link.id} used by creator {creator.id} for company {link.company_id}")
        return partner

    # ==================== Graph API ====================

    def request_partnership(self, partner_id: int) -> Dict[str, Any]:
        """Ask Meta to send the creator a branded content permission request."""
        partner = self.get_partner(partner_id)
        if not partner.instagram_user_id:
            raise ValidationError('Creator Instagram user ID required', 'instagram_user_id')
        business_id = self.company.instagram_business_id
        if not business_id:
            raise ValidationError('Instagram account not connected', 'instagram')

        result = self.client.post(
            f'{business_id}/branded_content_ad_permissions',
            data={'creator_instagram_account': partner.instagram_user_id},
        )
        partner.meta_partner_id = result.get('id') or partner.meta_partner_id
        partner.status = 'pending'
        db.session.commit()
        return {'partner': partner, 'request_id': result.get('id')}

    def sync_partnership_status(self) -> Dict[str, Any]:
        """Pull permission statuses from Meta and update matching partners."""
        business_id = self.company.instagram_business_id
        if not business_id:
            raise ValidationError('Instagram account not connected', 'instagram')

        body = self.client.get(
            f'{business_id}/branded_content_ad_permissions',
            {'fields': 'id,creator_instagram_account,creator_username,status,expiration_time'},
        )
        updated = 0
        for permission in body.get('data') or []:
            creator_ig_id = str(permission.get('creator_instagram_account') or '')
            status = META_STATUS_MAP.get((permission.get('status') or '').upper())
            if not creator_ig_id or not status:
                continue
            partner = CreatorAdPartner.query.filter_by(
                company_id=self.company_id, instagram_user_id=creator_ig_id
            ).first()
            if not partner:
                handle = _clean_handle(permission.get('creator_username'))
                if not handle:
                    continue
                partner = CreatorAdPartner(
                    company_id=self.company_id,
                    instagram_username=handle,
                    instagram_user_id=creator_ig_id,
                    status='pending',
                )
                db.session.add(partner)
            if partner.status != status:
                self._set_status(partner, status)
                updated += 1
            partner.meta_partner_id = permission.get('id') or partner.meta_partner_id
            if permission.get('expiration_time'):
                partner.expires_at = datetime.utcfromtimestamp(int(permission['expiration_time']))
        db.session.commit()
        return {'permissions': body.get('data') or [], 'updated': updated}

    def dashboard(self) -> Dict[str, Any]:
        now = datetime.utcnow()
        links = CreatorAuthLink.query.filter_by(company_id=self.company_id).all()
        return {
            'connected': bool(self.company.instagram_business_id),
            'partners': self.partner_summary(),
            'auth_links': {
                'total': len(links),
                'used': sum(1 for link in links if link.is_used),
                'open': sum(1 for link in links if not link.is_used and link.expires_at >= now),
            },
        }


def expire_partners_and_links(now: Optional[datetime] = None) -> Dict[str, int]:
    """Expire active or pending partners and unused links past `expires_at`."""
    now = now or datetime.utcnow()
    partners = CreatorAdPartner.query.filter(
        CreatorAdPartner.status.in_(('pending', 'active')),
        CreatorAdPartner.expires_at.isnot(None),
        CreatorAdPartner.expires_at < now,
    ).update({'status': 'expired'}, synchronize_session=False)
    links = CreatorAuthLink.query.filter(
        CreatorAuthLink.is_used.is_(False),
        CreatorAuthLink.expires_at < now,
    ).delete(synchronize_session=False)
    db.session.commit()
    if partners or links:
        logger.info(f"Expired {partners} ad partners and removed {links} stale auth links")
    return {'partners_expired': partners, 'links_expired': links}
