"""
Tests for the auth and user profile endpoints.
"""
from datetime import datetime, timedelta

import jwt

from app.models import User
from app.middleware.auth import create_refresh_token


class TestRegister:
    """Tests for POST /api/auth/register."""

    def test_register_creator(self, client):
        response = client.post('/api/auth/register', json={
            'name': 'Carla Nova', 'email': 'Carla@Nova.com', 'password': 'senha-forte-123',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['user']['role'] == 'creator'
        assert data['user']['email'] == 'carla@nova.com'
        assert data['access_token']
        assert data['refresh_token']

    def test_register_duplicate_email(self, client, sample_creator):
        response = client.post('/api/auth/register', json={
            'name': 'Outra Ana', 'email': 'ana@creator.com', 'password': 'senha-forte-123',
        })
        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'ALREADY_EXISTS'

    def test_register_short_password(self, client):
        response = client.post('/api/auth/register', json={
            'name': 'Carla', 'email': 'carla@nova.com', 'password': '123',
        })
        assert response.status_code == 400

    def test_register_rejects_admin_role(self, client):
        response = client.post('/api/auth/register', json={
            'name': 'Carla', 'email': 'carla@nova.com', 'password': 'senha-forte-123', 'role': 'admin',
        })
        assert response.status_code == 400
        assert User.query.filter_by(email='carla@nova.com').first() is None


class TestLogin:

    def test_login(self, client, sample_creator):
        response = client.post('/api/auth/login', json={
            'email': 'ana@creator.com', 'password': 'senha-forte-123',
        })
        assert response.status_code == 200
        assert response.get_json()['user']['id'] == sample_creator.id

    def test_wrong_password(self, client, sample_creator):
        response = client.post('/api/auth/login', json={
            'email': 'ana@creator.com', 'password': 'errada-123',
        })
        assert response.status_code == 401

    def test_banned_user(self, client, db, sample_creator):
        sample_creator.is_banned = True
        db.session.commit()
        response = client.post('/api/auth/login', json={
            'email': 'ana@creator.com', 'password': 'senha-forte-123',
        })
        assert response.status_code == 403
        assert response.get_json()['error']['code'] == 'ACCOUNT_BANNED'

    def test_login_attempts_are_limited(self, app, client, sample_creator):
        app.config['AUTH_RATE_LIMIT'] = '2 per minute'
        responses = [
            client.post('/api/auth/login', json={'email': 'ana@creator.com', 'password': 'errada-123'})
            for _ in range(3)
        ]

        assert [r.status_code for r in responses] == [401, 401, 429]
        assert responses[-1].get_json()['error']['code'] == 'RATE_LIMITED'


class TestTokens:
    """Tests for token refresh and bearer auth."""

    def test_refresh(self, client, app, sample_creator):
        token = create_refresh_token(sample_creator.id, 'creator')
        response = client.post('/api/auth/refresh', json={'refresh_token': token})
        assert response.status_code == 200
        assert 'access_token' in response.get_json()

    def test_refresh_rejects_access_token(self, client, creator_headers):
        access = creator_headers['Authorization'].split(' ', 1)[1]
        response = client.post('/api/auth/refresh', json={'refresh_token': access})
        assert response.status_code == 401

    def test_expired_token_means_session_expired(self, client, app, sample_creator):
        token = jwt.encode({
            'user_id': sample_creator.id,
            'role': 'creator',
            'type': 'access',
            'exp': datetime.utcnow() - timedelta(minutes=1),
        }, app.config['JWT_SECRET_KEY'], algorithm='HS256')

        response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401
        assert response.get_json()['error']['code'] == 'SESSION_EXPIRED'

    def test_me_requires_auth(self, client):
        response = client.get('/api/auth/me')
        assert response.status_code == 401
        assert response.get_json()['error']['code'] == 'AUTH_REQUIRED'

    def test_me(self, client, creator_headers, sample_creator):
        response = client.get('/api/auth/me', headers=creator_headers)
        assert response.status_code == 200
        assert response.get_json()['user']['email'] == 'ana@creator.com'


class TestProfile:
    """Tests for GET/PATCH /api/user."""

    def test_patch_profile(self, client, creator_headers, sample_creator):
        response = client.patch('/api/user', headers=creator_headers, json={
            'name': 'Ana C.',
            'instagram': '@ana.nova',
            'state': 'rj',
            'niche': ['beauty', 'fashion'],
            'cep': '01310-100',
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['name'] == 'Ana C.'
        assert data['instagram'] == 'ana.nova'
        assert data['state'] == 'RJ'
        assert data['cep'] == '01310100'

    def test_patch_without_name_changes_nothing(self, client, creator_headers, sample_creator):
        response = client.patch('/api/user', headers=creator_headers, json={'bio': 'Nova bio'})

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_NAME'
        assert User.query.get(sample_creator.id).bio is None

    def test_one_bad_field_rejects_everything(self, client, creator_headers, sample_creator):
        response = client.patch('/api/user', headers=creator_headers, json={
            'name': 'Outro Nome', 'bio': 'Nova bio', 'niche': ['astrologia'],
        })
        assert response.status_code == 400
        user = User.query.get(sample_creator.id)
        assert user.name == 'Ana Criadora'
        assert user.bio is None

    def test_underage_birth_date(self, client, creator_headers):
        response = client.patch('/api/user', headers=creator_headers, json={
            'name': 'Ana', 'date_of_birth': datetime.utcnow().strftime('%Y-%m-%d'),
        })
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_DATE_OF_BIRTH'

    def test_public_profile_hides_private_fields(self, client, auth_headers, sample_creator):
        response = client.get(f'/api/users/{sample_creator.id}', headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert 'email' not in data
        assert data['communities'] == []
