"""
JWT authentication middleware.

Access tokens travel as `Authorization: Bearer <token>` on REST calls and as
the `token` query parameter on the notification WebSocket.
"""
from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import request, g, current_app

from ..models import User, Company, CompanyMember
from ..utils.errors import unauthorized, session_expired, forbidden, bad_request, ErrorCode

JWT_ALGORITHM = 'HS256'


class TokenExpiredError(ValueError):
    """Raised when a token's exp claim has passed."""


def _secret() -> str:
    return current_app.config['JWT_SECRET_KEY']


def create_access_token(user_id: int, role: str) -> str:
    """Create a short-lived access token."""
    payload = {
        'user_id': user_id,
        'role': role,
        'type': 'access',
        'exp': datetime.utcnow() + timedelta(seconds=current_app.config['JWT_ACCESS_EXPIRY_SECONDS']),
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_refresh_token(user_id: int, role: str) -> str:
    """Create a long-lived refresh token."""
    payload = {
        'user_id': user_id,
        'role': role,
        'type': 'refresh',
        'exp': datetime.utcnow() + timedelta(seconds=current_app.config['JWT_REFRESH_EXPIRY_SECONDS']),
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError('Token has expired')
    except jwt.InvalidTokenError:
        raise ValueError('Invalid token')


def user_from_token(token: str):
    """Return the active user an access token belongs to, or None."""
    if not token:
        return None
    try:
        payload = decode_token(token)
    except ValueError:
        return None
    if payload.get('type') != 'access':
        return None
    user = User.query.get(payload.get('user_id'))
    if not user or user.is_banned:
        return None
    return user


def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header.split(' ', 1)[1].strip() or None


def require_auth(f):
    """
    Decorator requiring a valid access token.

    Sets g.user. Expired tokens answer 401 "Session expired" so clients can
    show the re-login prompt.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return unauthorized()

        try:
            payload = decode_token(token)
        except TokenExpiredError:
            return session_expired()
        except ValueError:
            return unauthorized('Invalid token', ErrorCode.INVALID_TOKEN)

        if payload.get('type') != 'access':
            return unauthorized('Invalid token type', ErrorCode.INVALID_TOKEN)

        user = User.query.get(payload.get('user_id'))
        if not user:
            return session_expired()
        if user.is_banned:
            return forbidden('Account suspended', ErrorCode.ACCOUNT_BANNED)

        g.user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Decorator restricting an endpoint to the given user roles.

    Usage:
        @require_role('company')
        def create_campaign(): ...
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            if g.user.role not in roles and g.user.role != 'admin':
                return forbidden(f"This action requires role: {', '.join(roles)}")
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_company(write: bool = False, manage: bool = False):
    """
    Decorator resolving the active company of a company user.

    The company comes from the X-Company-ID header or the user's saved
    active company. Sets g.company and g.company_member.
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            raw_id = request.headers.get('X-Company-ID') or g.user.active_company_id
            if not raw_id:
                return bad_request('No active company selected', ErrorCode.MISSING_FIELD)
            try:
                company_id = int(raw_id)
            except (TypeError, ValueError):
                return bad_request('Invalid company id', ErrorCode.INVALID_FIELD)

            member = CompanyMember.query.filter_by(company_id=company_id, user_id=g.user.id).first()
            if not member and g.user.role != 'admin':
                return forbidden('Not a member of this company')
            if member and manage and not member.can_manage:
                return forbidden('Owner or admin role required')
            if member and write and not member.can_write:
                return forbidden('Read-only access')

            company = Company.query.get(company_id)
            if not company:
                return forbidden('Not a member of this company')

            g.company = company
            g.company_member = member
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def company_access(user, company_id: int, write: bool = False) -> bool:
    """Whether the user may see (or, with write=True, change) data of the company."""
    if user.role == 'admin':
        return True
    member = CompanyMember.query.filter_by(company_id=company_id, user_id=user.id).first()
    if not member:
        return False
    return member.can_write if write else True
