"""
Tests for Partnership Ads: creator partners, auth links and Graph permission requests.
"""
import json
from datetime import datetime, timedelta

import httpx
import pytest

from app.models import CreatorAdPartner, CreatorAuthLink
from app.services.meta_ads_service import MetaAdsService, expire_partners_and_links
from app.services.meta_client import MetaGraphClient
from app.utils.exceptions import (
    DuplicateError,
    InvalidStatusTransitionError,
    ValidationError,
    ExternalServiceError,
)

BUSINESS_ID = '17841400000001'


class TestPartners:

    def test_add_partner_normalizes_handle(self, app, sample_company):
        partner = MetaAdsService(sample_company.id).add_partner({'instagram_username': '  @Ana.Cria '})
        assert partner.instagram_username == 'ana.cria'
        assert partner.status == 'pending'
        assert partner.authorized_at is None

    def test_duplicate_handle(self, app, sample_company):
        service = MetaAdsService(sample_company.id)
        service.add_partner({'instagram_username': 'ana.cria'})
        with pytest.raises(DuplicateError):
            service.add_partner({'instagram_username': '@ANA.CRIA'})

    def test_handle_required(self, app, sample_company):
        with pytest.raises(ValidationError):
            MetaAdsService(sample_company.id).add_partner({'instagram_username': '@'})

    def test_activation_sets_authorized_at(self, app, sample_company):
        service = MetaAdsService(sample_company.id)
        partner = service.add_partner({'instagram_username': 'ana.cria'})
        service.update_partner(partner.id, {'status': 'active'})
        assert partner.authorized_at is not None
        assert service.partner_summary() == {'total': 1, 'pending': 0, 'active': 1, 'expired': 0, 'revoked': 0}

    def test_invalid_status(self, app, sample_company):
        service = MetaAdsService(sample_company.id)
        partner = service.add_partner({'instagram_username': 'ana.cria'})
        with pytest.raises(ValidationError):
            service.update_partner(partner.id, {'status': 'approved'})


class TestAuthLinks:
    """Tests for creating and consuming one-time auth links."""

    def test_consume_registers_partner(self, app, sample_company, sample_creator):
        service = MetaAdsService(sample_company.id)
        link = service.create_auth_link(label='Verão')
        assert len(link.token) == 64
        assert link.expires_at > datetime.utcnow() + timedelta(days=6)

        partner = MetaAdsService.consume_auth_link(link.token, sample_creator)
        assert partner.creator_id == sample_creator.id
        assert partner.instagram_username == 'ana.cria'
        assert partner.instagram_user_id == '1789000001'
        assert partner.auth_link_id == link.id
        assert link.is_used is True
        assert link.used_by_user_id == sample_creator.id

    def test_link_is_single_use(self, app, sample_company, sample_creator, other_creator):
        link = MetaAdsService(sample_company.id).create_auth_link()
        MetaAdsService.consume_auth_link(link.token, sample_creator)
        with pytest.raises(InvalidStatusTransitionError):
            MetaAdsService.consume_auth_link(link.token, other_creator)

    def test_existing_partner_is_linked(self, app, sample_company, sample_creator):
        service = MetaAdsService(sample_company.id)
        existing = service.add_partner({'instagram_username': '@ana.cria'})
        link = service.create_auth_link()

        partner = MetaAdsService.consume_auth_link(link.token, sample_creator)
        assert partner.id == existing.id
        assert CreatorAdPartner.query.count() == 1

    def test_expired_link(self, app, db, sample_company, sample_creator):
        link = MetaAdsService(sample_company.id).create_auth_link()
        link.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()
        with pytest.raises(InvalidStatusTransitionError):
            MetaAdsService.consume_auth_link(link.token, sample_creator)

    def test_creator_needs_instagram(self, app, db, sample_company, sample_creator):
        sample_creator.instagram = None
        db.session.commit()
        link = MetaAdsService(sample_company.id).create_auth_link()
        with pytest.raises(ValidationError):
            MetaAdsService.consume_auth_link(link.token, sample_creator)


class TestExpiry:

    def test_expire_partners_and_links(self, app, db, sample_company):
        service = MetaAdsService(sample_company.id)
        old = service.add_partner({'instagram_username': 'antiga',
                                   'expires_at': datetime.utcnow() - timedelta(days=1)})
        fresh = service.add_partner({'instagram_username': 'nova',
                                     'expires_at': datetime.utcnow() + timedelta(days=30)})
        revoked = service.add_partner({'instagram_username': 'revogada', 'status': 'revoked',
                                       'expires_at': datetime.utcnow() - timedelta(days=1)})
        stale = service.create_auth_link()
        stale.expires_at = datetime.utcnow() - timedelta(days=1)
        service.create_auth_link()
        db.session.commit()

        assert expire_partners_and_links() == {'partners_expired': 1, 'links_expired': 1}
        db.session.expire_all()
        assert CreatorAdPartner.query.get(old.id).status == 'expired'
        assert CreatorAdPartner.query.get(fresh.id).status == 'pending'
        assert CreatorAdPartner.query.get(revoked.id).status == 'revoked'
        assert CreatorAuthLink.query.count() == 1


def graph_client(handler):
    return MetaGraphClient('page-token', transport=httpx.MockTransport(handler))


class TestGraphPermissions:
    """Tests for partnership requests and status sync against a mocked Graph API."""

    @pytest.fixture
    def connected(self, db, sample_company):
        sample_company.instagram_business_id = BUSINESS_ID
        db.session.commit()
        return sample_company

    def test_request_partnership(self, app, connected):
        requests_seen = []

        def handler(request):
            requests_seen.append(request)
            return httpx.Response(200, json={'id': 'perm_1'})

        service = MetaAdsService(connected.id, client=graph_client(handler))
        partner = service.add_partner({'instagram_username': 'ana.cria', 'instagram_user_id': '1789000001'})

        result = service.request_partnership(partner.id)
        assert result['request_id'] == 'perm_1'
        assert partner.meta_partner_id == 'perm_1'
        assert requests_seen[0].url.path.endswith(f'{BUSINESS_ID}/branded_content_ad_permissions')
        assert b'creator_instagram_account=1789000001' in requests_seen[0].content

    def test_request_needs_instagram_user_id(self, app, connected):
        service = MetaAdsService(connected.id, client=graph_client(lambda r: httpx.Response(200, json={})))
        partner = service.add_partner({'instagram_username': 'ana.cria'})
        with pytest.raises(ValidationError):
            service.request_partnership(partner.id)

    def test_graph_error_propagates(self, app, connected):
        def handler(request):
            return httpx.Response(400, json={'error': {'message': 'Invalid creator'}})

        service = MetaAdsService(connected.id, client=graph_client(handler))
        partner = service.add_partner({'instagram_username': 'ana.cria', 'instagram_user_id': '1'})
        with pytest.raises(ExternalServiceError):
            service.request_partnership(partner.id)

    def test_sync_status(self, app, connected):
        def handler(request):
            return httpx.Response(200, json={'data': [
                {'id': 'perm_1', 'creator_instagram_account': '1789000001', 'status': 'APPROVED'},
                {'id': 'perm_2', 'creator_instagram_account': '555', 'creator_username': 'Nova.Parceira',
                 'status': 'PENDING'},
                {'id': 'perm_3', 'creator_instagram_account': '777', 'status': 'UNKNOWN'},
            ]})

        service = MetaAdsService(connected.id, client=graph_client(handler))
        partner = service.add_partner({'instagram_username': 'ana.cria', 'instagram_user_id': '1789000001'})

        result = service.sync_partnership_status()
        assert result['updated'] == 1
        assert partner.status == 'active'
        assert partner.authorized_at is not None
        created = CreatorAdPartner.query.filter_by(instagram_user_id='555').one()
        assert created.instagram_username == 'nova.parceira'
        assert CreatorAdPartner.query.count() == 2


class TestMetaMarketingApi:

    def test_auth_link_flow(self, client, auth_headers, creator_headers, sample_company):
        response = client.post('/api/meta-marketing/creator-auth-link', headers=auth_headers,
                               json={'label': 'Verão'})
        assert response.status_code == 201
        link = response.get_json()
        assert link['url'].endswith(f"/partnership/authorize/{link['token']}")

        preview = client.get(f"/api/meta-marketing/creator-auth/{link['token']}", headers=creator_headers)
        assert preview.get_json()['company']['name'] == sample_company.name

        response = client.post(f"/api/meta-marketing/creator-auth/{link['token']}", headers=creator_headers)
        assert response.status_code == 201
        assert response.get_json()['instagram_username'] == 'ana.cria'

        partners = client.get('/api/meta-marketing/creator-partners', headers=auth_headers).get_json()
        assert partners['summary']['total'] == 1

    def test_company_user_cannot_consume(self, client, auth_headers, sample_company):
        token = client.post('/api/meta-marketing/creator-auth-link', headers=auth_headers,
                            json={}).get_json()['token']
        response = client.post(f'/api/meta-marketing/creator-auth/{token}', headers=auth_headers)
        assert response.status_code == 403

    def test_unknown_link(self, client, creator_headers):
        response = client.get('/api/meta-marketing/creator-auth/nope', headers=creator_headers)
        assert response.status_code == 404

    def test_partnership_request_requires_partner(self, client, auth_headers):
        response = client.post('/api/meta-marketing/partnership-request', headers=auth_headers, json={})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'

    def test_dashboard(self, client, auth_headers):
        client.post('/api/meta-marketing/creator-auth-link', headers=auth_headers, json={})
        data = client.get('/api/meta-marketing/dashboard', headers=auth_headers).get_json()
        assert data['connected'] is False
        assert data['auth_links'] == {'total': 1, 'used': 0, 'open': 1}
