"""
Company Service for CreatorConnect.

Brand accounts, their staff (owner/admin/member/reader), staff invites and
the user's active company.
"""
import logging
import re
import secrets
import unicodedata
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from ..extensions import db
from ..models import Company, CompanyMember, CompanyUserInvite, User
from ..utils.brazil import COMPANY_CATEGORIES, STATES
from ..utils.exceptions import (
    NotFoundError,
    CompanyNotFoundError,
    ValidationError,
    DuplicateError,
    AuthorizationError,
    InvalidStatusTransitionError,
)
from ..utils.validators import only_digits, validate_cnpj, validate_email, clean_cep

logger = logging.getLogger(__name__)

STAFF_INVITE_TTL_DAYS = 7

EDITABLE_FIELDS = (
    'name', 'trade_name', 'description', 'tagline', 'logo_url', 'website', 'instagram',
    'email', 'phone', 'street', 'number', 'neighborhood', 'city', 'complement',
    'is_discoverable', 'auto_join_community', 'onboarding_completed',
)


def slugify(value: str) -> str:
    normalized = unicodedata.normalize('NFKD', value or '').encode('ascii', 'ignore').decode('ascii')
    slug = re.sub(r'[^a-z0-9]+', '-', normalized.lower()).strip('-')
    return slug or 'empresa'


def unique_slug(name: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(name)[:100]
    slug = base
    suffix = 2
    while True:
        query = Company.query.filter_by(slug=slug)
        if exclude_id:
            query = query.filter(Company.id != exclude_id)
        if not query.first():
            return slug
        slug = f'{base}-{suffix}'
        suffix += 1


class CompanyService:
    """Companies and their staff."""

    def _apply_fields(self, company: Company, data: Dict[str, Any]) -> None:
        if 'name' in data and not (data.get('name') or '').strip():
            raise ValidationError('name is required', 'name')

        for field in EDITABLE_FIELDS:
            if field in data:
                value = data[field]
                setattr(company, field, value.strip() if isinstance(value, str) else value)

        if 'cnpj' in data:
            cnpj = only_digits(data['cnpj'])
            if cnpj and not validate_cnpj(cnpj):
                raise ValidationError('CNPJ inválido', 'cnpj')
            company.cnpj = cnpj or None
        if 'category' in data:
            if data['category'] and data['category'] not in COMPANY_CATEGORIES:
                raise ValidationError(f"Invalid category: {data['category']}", 'category')
            company.category = data['category']
        if 'state' in data:
            state = (data['state'] or '').upper() or None
            if state and state not in STATES:
                raise ValidationError(f'Invalid state: {state}', 'state')
            company.state = state
        if 'cep' in data:
            if data['cep'] and not clean_cep(data['cep']):
                raise ValidationError('CEP inválido', 'cep')
            company.cep = clean_cep(data['cep'])

    def create_company(self, user: User, data: Dict[str, Any]) -> Company:
        """Create a company owned by `user` and make it the user's active company."""
        if user.role not in ('company', 'admin'):
            raise AuthorizationError('Only company accounts can create companies')
        if not (data.get('name') or '').strip():
            raise ValidationError('name is required', 'name')

        company = Company(created_by_user_id=user.id)
        self._apply_fields(company, data)
        company.slug = unique_slug(company.name)
        db.session.add(company)
        db.session.flush()

        db.session.add(CompanyMember(company_id=company.id, user_id=user.id, role='owner'))
        user.active_company_id = company.id
        db.session.commit()

        logger.info(f"Company {company.id} ({company.slug}) created by user {user.id}")
        return company

    def update_company(self, company: Company, data: Dict[str, Any]) -> Company:
        name_before = company.name
        self._apply_fields(company, data)
        if company.name != name_before:
            company.slug = unique_slug(company.name, exclude_id=company.id)
        db.session.commit()
        return company

    def get_company(self, company_id: int) -> Company:
        company = Company.query.get(company_id)
        if not company:
            raise CompanyNotFoundError(company_id)
        return company

    def get_by_slug(self, slug: str) -> Company:
        company = Company.query.filter_by(slug=slug).first()
        if not company:
            raise CompanyNotFoundError(slug)
        return company

    def list_user_companies(self, user_id: int) -> List[Dict[str, Any]]:
        memberships = CompanyMember.query.filter_by(user_id=user_id).all()
        return [
            {'company': m.company.to_dict(), 'role': m.role}
            for m in memberships if m.company
        ]

    def set_active_company(self, user: User, company_id: int) -> Company:
        member = CompanyMember.query.filter_by(company_id=company_id, user_id=user.id).first()
        if not member:
            raise AuthorizationError('Você não é membro desta empresa')
        user.active_company_id = company_id
        db.session.commit()
        return member.company

    def list_public(self, category: Optional[str] = None, featured: bool = False) -> List[Company]:
        query = Company.query.filter_by(is_discoverable=True)
        if category:
            query = query.filter_by(category=category)
        if featured:
            query = query.filter_by(is_featured=True)
        return query.order_by(Company.is_featured.desc(), Company.name).all()

    # ==================== Staff ====================

    def list_members(self, company_id: int) -> List[CompanyMember]:
        return CompanyMember.query.filter_by(company_id=company_id).order_by(CompanyMember.created_at).all()

    def update_member_role(self, company_id: int, member_id: int, role: str) -> CompanyMember:
        if role not in CompanyMember.ROLES:
            raise ValidationError(f'Invalid role: {role}', 'role')
        member = CompanyMember.query.filter_by(id=member_id, company_id=company_id).first()
        if not member:
            raise NotFoundError('Member', member_id)
        if member.role == 'owner' and role != 'owner' and self._owner_count(company_id) == 1:
            raise InvalidStatusTransitionError('member', 'owner', role)
        member.role = role
        db.session.commit()
        return member

    def remove_member(self, company_id: int, member_id: int) -> None:
        member = CompanyMember.query.filter_by(id=member_id, company_id=company_id).first()
        if not member:
            raise NotFoundError('Member', member_id)
        if member.role == 'owner' and self._owner_count(company_id) == 1:
            raise InvalidStatusTransitionError('member', 'owner', 'removed')
        user = User.query.get(member.user_id)
        if user and user.active_company_id == company_id:
            user.active_company_id = None
        db.session.delete(member)
        db.session.commit()

    def _owner_count(self, company_id: int) -> int:
        return CompanyMember.query.filter_by(company_id=company_id, role='owner').count()

    def invite_staff(self, company_id: int, email: str, role: str, invited_by: User) -> CompanyUserInvite:
        email = (email or '').strip().lower()
        if not validate_email(email):
            raise ValidationError('E-mail inválido', 'email')
        if role not in CompanyMember.ROLES or role == 'owner':
            raise ValidationError(f'Invalid role: {role}', 'role')

        existing_user = User.query.filter_by(email=email).first()
        if existing_user and CompanyMember.query.filter_by(company_id=company_id, user_id=existing_user.id).first():
            raise DuplicateError('Member', email)
        if CompanyUserInvite.query.filter_by(company_id=company_id, email=email, status='pending').first():
            raise DuplicateError('Invite', email)

        invite = CompanyUserInvite(
            company_id=company_id,
            email=email,
            role=role,
            token=secrets.token_urlsafe(32),
            status='pending',
            invited_by_user_id=invited_by.id,
            expires_at=datetime.utcnow() + timedelta(days=STAFF_INVITE_TTL_DAYS),
        )
        db.session.add(invite)
        db.session.commit()
        return invite

    def list_staff_invites(self, company_id: int) -> List[CompanyUserInvite]:
        return CompanyUserInvite.query.filter_by(company_id=company_id, status='pending') \
            .order_by(CompanyUserInvite.created_at.desc()).all()

    def cancel_staff_invite(self, company_id: int, invite_id: int) -> CompanyUserInvite:
        invite = CompanyUserInvite.query.filter_by(id=invite_id, company_id=company_id).first()
        if not invite:
            raise NotFoundError('Invite', invite_id)
        invite.status = 'cancelled'
        db.session.commit()
        return invite

    def get_staff_invite(self, token: str) -> CompanyUserInvite:
        invite = CompanyUserInvite.query.filter_by(token=token).first()
        if not invite:
            raise NotFoundError('Invite')
        return invite

    def accept_staff_invite(self, token: str, user: User) -> CompanyMember:
        invite = self.get_staff_invite(token)
        if invite.status != 'pending' or invite.is_expired:
            raise InvalidStatusTransitionError('invite', 'expired' if invite.is_expired else invite.status, 'accepted')
        if invite.email != (user.email or '').lower():
            raise AuthorizationError('Este convite foi enviado para outro e-mail')

        member = CompanyMember.query.filter_by(company_id=invite.company_id, user_id=user.id).first()
        if not member:
            member = CompanyMember(company_id=invite.company_id, user_id=user.id, role=invite.role)
            db.session.add(member)
        invite.status = 'accepted'
        if not user.active_company_id:
            user.active_company_id = invite.company_id
        db.session.commit()
        return member


company_service = CompanyService()
