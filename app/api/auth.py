"""
Authentication API endpoints.
Handles account registration, login and JWT token refresh.
"""
from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..models import User
from ..middleware.auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    require_auth,
    TokenExpiredError,
)
from ..middleware.rate_limit import auth_limit
from ..utils.errors import bad_request, unauthorized, forbidden, conflict, session_expired, ErrorCode
from ..utils.validators import validate_email

auth_bp = Blueprint('auth', __name__)

SIGNUP_ROLES = ('creator', 'company')


def _token_pair(user: User) -> dict:
    return {
        'access_token': create_access_token(user.id, user.role),
        'refresh_token': create_refresh_token(user.id, user.role),
    }


@auth_bp.route('/register', methods=['POST'])
@auth_limit()
def register():
    """
    Create a creator or company account.

    Request body:
        name: string (required)
        email: string (required)
        password: string (required, 8+ characters)
        role: 'creator' | 'company' (default 'creator')

    Returns:
        User data and auth tokens
    """
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    role = data.get('role') or 'creator'

    if not name:
        return bad_request('Name is required', ErrorCode.MISSING_FIELD)
    if not validate_email(email):
        return bad_request('A valid email is required', ErrorCode.INVALID_FIELD)
    if len(password) < 8:
        return bad_request('Password must be at least 8 characters', ErrorCode.INVALID_FIELD)
    if role not in SIGNUP_ROLES:
        return bad_request(f'Invalid role: {role}', ErrorCode.INVALID_FIELD)

    if User.query.filter_by(email=email).first():
        return conflict('Email already registered', ErrorCode.ALREADY_EXISTS)

    user = User(name=name, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    return jsonify({'user': user.to_dict(include_private=True), **_token_pair(user)}), 201


@auth_bp.route('/login', methods=['POST'])
@auth_limit()
def login():
    """Login with email and password."""
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        return bad_request('Email and password are required', ErrorCode.MISSING_FIELD)

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return unauthorized('Invalid email or password', ErrorCode.INVALID_TOKEN)
    if user.is_banned:
        return forbidden('Account suspended', ErrorCode.ACCOUNT_BANNED)

    return jsonify({'user': user.to_dict(include_private=True), **_token_pair(user)})


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    """Exchange a refresh token for a new token pair."""
    data = request.get_json(silent=True) or {}
    token = data.get('refresh_token')
    if not token:
        return bad_request('refresh_token is required', ErrorCode.MISSING_FIELD)

    try:
        payload = decode_token(token)
    except TokenExpiredError:
        return session_expired()
    except ValueError:
        return unauthorized('Invalid token', ErrorCode.INVALID_TOKEN)
    if payload.get('type') != 'refresh':
        return unauthorized('Invalid token type', ErrorCode.INVALID_TOKEN)

    user = User.query.get(payload.get('user_id'))
    if not user:
        return session_expired()
    if user.is_banned:
        return forbidden('Account suspended', ErrorCode.ACCOUNT_BANNED)

    return jsonify(_token_pair(user))


@auth_bp.route('/me', methods=['GET'])
@require_auth
def me():
    return jsonify({'user': g.user.to_dict(include_private=True)})
