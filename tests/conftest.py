"""
Shared pytest fixtures.

Every test gets a fresh app with an in-memory SQLite database. Model
fixtures are created inside the app context the `app` fixture keeps pushed,
so request handlers and tests share one session.
"""
from datetime import date

import pytest

from app import create_app
from app.extensions import db as _db
from app.models import User, Company, CompanyMember, Campaign
from app.middleware.auth import create_access_token
from app.realtime.hub import manager
from app.utils.cache import cache


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        cache.clear()
        yield app
        _db.session.remove()
        _db.drop_all()
    manager.active_connections.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


def make_headers(user, company=None):
    headers = {
        'Authorization': f'Bearer {create_access_token(user.id, user.role)}',
        'Content-Type': 'application/json',
    }
    if company is not None:
        headers['X-Company-ID'] = str(company.id)
    return headers


@pytest.fixture
def sample_company_user(db):
    user = User(name='Paula Marca', email='paula@marcabela.com.br', role='company')
    user.set_password('senha-forte-123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def sample_company(db, sample_company_user):
    company = Company(
        name='Marca Bela',
        slug='marca-bela',
        cnpj='11222333000181',
        category='beauty',
        state='SP',
        created_by_user_id=sample_company_user.id,
    )
    db.session.add(company)
    db.session.flush()
    db.session.add(CompanyMember(company_id=company.id, user_id=sample_company_user.id, role='owner'))
    sample_company_user.active_company_id = company.id
    db.session.commit()
    return company


@pytest.fixture
def sample_creator(db):
    user = User(
        name='Ana Criadora',
        email='ana@creator.com',
        role='creator',
        date_of_birth=date(1998, 5, 10),
        gender='feminino',
        niche=['beauty', 'lifestyle'],
        state='SP',
        city='São Paulo',
        instagram='ana.cria',
        instagram_user_id='1789000001',
        instagram_followers=15000,
        instagram_engagement_rate=4.2,
    )
    user.set_password('senha-forte-123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def other_creator(db):
    user = User(
        name='Bruno Gamer',
        email='bruno@creator.com',
        role='creator',
        date_of_birth=date(1990, 1, 20),
        gender='masculino',
        niche=['gaming'],
        state='RS',
        instagram='bruno.joga',
        instagram_followers=120000,
        instagram_engagement_rate=1.5,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def sample_campaign(db, sample_company, sample_company_user):
    campaign = Campaign(
        company_id=sample_company.id,
        created_by_user_id=sample_company_user.id,
        title='Lançamento Sérum Vitamina C',
        description='Reels mostrando a rotina de skincare com o novo sérum.',
        target_niche=['beauty'],
        target_age_ranges=['18-24', '25-34'],
        deliverable_types=['reels'],
        status='open',
        visibility='public',
    )
    db.session.add(campaign)
    db.session.commit()
    return campaign


@pytest.fixture
def auth_headers(sample_company_user, sample_company):
    """Company owner headers scoped to sample_company."""
    return make_headers(sample_company_user, sample_company)


@pytest.fixture
def creator_headers(sample_creator):
    return make_headers(sample_creator)


@pytest.fixture
def headers_for(app):
    """Build auth headers for any user, optionally scoped to a company."""
    return make_headers
