"""
Tests for the JSON error contract, health endpoints and CLI commands.
"""
from datetime import datetime, timedelta
from unittest.mock import patch

from app.models import CreatorAuthLink
from app.services.meta_ads_service import MetaAdsService
from app.utils.scheduler import run_partner_expiration


class TestErrorResponses:

    def test_unknown_route(self, client):
        response = client.get('/api/does-not-exist')
        assert response.status_code == 404
        assert response.get_json() == {'error': {'message': 'Not found', 'code': 'NOT_FOUND'}}

    def test_method_not_allowed(self, client):
        response = client.delete('/health')
        assert response.status_code == 405
        assert response.get_json()['error']['code'] == 'INVALID_REQUEST'

    def test_domain_error_shape(self, client, creator_headers):
        response = client.get('/api/campaigns/424242', headers=creator_headers)
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'CAMPAIGN_NOT_FOUND'

    def test_request_id_is_echoed(self, client):
        response = client.get('/health', headers={'X-Request-ID': 'req-abc'})
        assert response.headers['X-Request-ID'] == 'req-abc'

    def test_request_id_is_generated(self, client):
        assert len(client.get('/health').headers['X-Request-ID']) == 32


class TestHealth:

    def test_health(self, client):
        assert client.get('/health').get_json() == {'status': 'healthy', 'service': 'creatorconnect'}

    def test_index(self, client):
        assert client.get('/').get_json()['service'] == 'CreatorConnect'


class TestCommands:
    """Tests for the flask CLI commands."""

    def test_expire_partners(self, app, db, sample_company):
        link = MetaAdsService(sample_company.id).create_auth_link()
        link.expires_at = datetime.utcnow() - timedelta(hours=1)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=['scheduled', 'expire-partners'])
        assert result.exit_code == 0
        assert 'Auth links removed: 1' in result.output
        assert CreatorAuthLink.query.count() == 0

    def test_release_wallet_nothing_due(self, app, db):
        result = app.test_cli_runner().invoke(args=['scheduled', 'release-wallet', '--days', '7'])
        assert result.exit_code == 0
        assert 'Released 0 transaction(s), 0 cents' in result.output

    def test_expire_invites(self, app, db):
        result = app.test_cli_runner().invoke(args=['scheduled', 'expire-invites'])
        assert result.exit_code == 0
        assert 'Expired 0 community invite(s)' in result.output

    def test_community_stats_unknown_company(self, app, db):
        result = app.test_cli_runner().invoke(args=['community', 'stats', '--company-id', '999'])
        assert result.exit_code != 0
        assert 'Company 999 not found' in result.output

    def test_recalculate_tiers(self, app, db, sample_company):
        result = app.test_cli_runner().invoke(
            args=['community', 'recalculate-tiers', '--company-id', str(sample_company.id)]
        )
        assert result.exit_code == 0
        assert 'TOTAL: 0' in result.output


class TestSchedulerJobs:

    def test_job_without_app_is_skipped(self):
        with patch('app.utils.scheduler._flask_app', None):
            assert run_partner_expiration() is None

    def test_job_runs_in_app_context(self, app, db):
        with patch('app.utils.scheduler._flask_app', app):
            assert run_partner_expiration() == {'partners_expired': 0, 'links_expired': 0}
