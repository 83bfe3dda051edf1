"""
User profile updates.

Every field is validated before anything is assigned, so a rejected update
leaves the record untouched.
"""
import logging
from typing import Dict, Any

from ..extensions import db
from ..models import User
from ..utils.brazil import STATES, GENDERS, NICHES
from ..utils.exceptions import ValidationError
from ..utils.validators import clean_cep, parse_date, is_at_least_18, only_digits

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    'bio', 'avatar_url', 'portfolio_url', 'instagram', 'tiktok', 'youtube', 'phone',
    'street', 'number', 'neighborhood', 'city', 'complement', 'pix_key',
)


def validate_profile_update(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the cleaned changes for a PATCH body, raising ValidationError on the first bad field."""
    name = (data.get('name') or '').strip() if isinstance(data.get('name'), str) else ''
    if not name:
        raise ValidationError('Name is required', 'name')
    changes = {'name': name}

    for field in TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f'{field} must be text', field)
            value = (value or '').strip() or None
            if value and field in ('instagram', 'tiktok', 'youtube'):
                value = value.lstrip('@')
            changes[field] = value

    if 'gender' in data:
        if data['gender'] and data['gender'] not in GENDERS:
            raise ValidationError(f"Invalid gender: {data['gender']}", 'gender')
        changes['gender'] = data['gender'] or None

    if 'niche' in data:
        niche = data['niche'] or []
        if not isinstance(niche, list) or any(n not in NICHES for n in niche):
            raise ValidationError('Invalid niche', 'niche')
        changes['niche'] = niche

    if 'state' in data:
        state = (data['state'] or '').upper() or None
        if state and state not in STATES:
            raise ValidationError(f'Invalid state: {state}', 'state')
        changes['state'] = state

    if 'cep' in data:
        if data['cep'] and not clean_cep(data['cep']):
            raise ValidationError('CEP inválido', 'cep')
        changes['cep'] = clean_cep(data['cep'])

    if 'cpf' in data:
        cpf = only_digits(data['cpf'])
        if cpf and len(cpf) != 11:
            raise ValidationError('CPF inválido', 'cpf')
        changes['cpf'] = cpf or None

    if 'date_of_birth' in data:
        try:
            dob = parse_date(data['date_of_birth'])
        except ValueError:
            raise ValidationError('date_of_birth must be YYYY-MM-DD', 'date_of_birth')
        if dob and not is_at_least_18(dob):
            raise ValidationError('Você precisa ter pelo menos 18 anos', 'date_of_birth')
        changes['date_of_birth'] = dob

    return changes


def update_profile(user: User, data: Dict[str, Any]) -> User:
    changes = validate_profile_update(data)
    for field, value in changes.items():
        setattr(user, field, value)
    db.session.commit()
    logger.info(f"User {user.id} updated profile fields: {', '.join(sorted(changes))}")
    return user
