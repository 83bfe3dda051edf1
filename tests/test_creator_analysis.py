"""
Tests for creator deep analysis and Instagram username validation.

Graph API calls go through an httpx MockTransport answering the
business_discovery lookup on the discovery business account.
"""
import httpx
import pytest

import app.services.creator_analysis_service as analysis_module
from app.models import User
from app.services.creator_analysis_service import CreatorAnalysisService, engagement_rate
from app.services.meta_client import MetaGraphClient
from app.utils.exceptions import ExternalServiceError, NotFoundError, ValidationError

DISCOVERY_ID = '17841400000099'

ANA_PROFILE = {
    'id': '1789000001',
    'username': 'ana.cria',
    'name': 'Ana Criadora',
    'biography': 'Moda e beleza',
    'profile_picture_url': 'https://cdn.example.com/ana.jpg',
    'followers_count': 20000,
    'follows_count': 310,
    'media_count': 128,
    'media': {'data': [
        {'id': 'm1', 'caption': 'Novo look #moda #Verao com @marcabela', 'like_count': 900,
         'comments_count': 100, 'media_type': 'VIDEO', 'media_product_type': 'REELS',
         'permalink': 'https://instagram.com/p/m1', 'thumbnail_url': 'https://cdn.example.com/m1.jpg',
         'timestamp': '2024-05-01T12:00:00+0000'},
        {'id': 'm2', 'caption': 'Detalhes #moda', 'like_count': 250, 'comments_count': 50,
         'media_type': 'IMAGE', 'media_product_type': 'FEED', 'media_url': 'https://cdn.example.com/m2.jpg',
         'timestamp': '2024-04-28T12:00:00+0000'},
        {'id': 'm3', 'comments_count': 20, 'media_type': 'CAROUSEL_ALBUM', 'media_product_type': 'FEED',
         'timestamp': '2024-04-20T12:00:00+0000'},
    ]},
}

NOT_FOUND = httpx.Response(400, json={'error': {
    'message': 'Invalid user id', 'code': 110, 'error_subcode': 2207013,
}})


def discovery_transport(answer):
    """MockTransport answering the business account lookup; records requests."""
    seen = []

    def handler(request):
        seen.append(request)
        if not request.url.path.endswith(f'/{DISCOVERY_ID}'):
            return httpx.Response(404, json={'error': {'message': 'Unknown path'}})
        if callable(answer):
            return answer(request)
        return answer

    return httpx.MockTransport(handler), seen


def found(profile=ANA_PROFILE):
    return httpx.Response(200, json={'business_discovery': profile, 'id': DISCOVERY_ID})


def make_service(answer):
    transport, seen = discovery_transport(answer)
    client = MetaGraphClient('discovery-token', transport=transport)
    return CreatorAnalysisService(client=client, business_id=DISCOVERY_ID), seen


@pytest.fixture
def graph(app, monkeypatch):
    """Route the API's Graph client to a MockTransport; returns the request log."""
    transport, seen = discovery_transport(found())
    app.config['META_DISCOVERY_BUSINESS_ID'] = DISCOVERY_ID
    monkeypatch.setattr(analysis_module, 'discovery_client',
                        lambda: MetaGraphClient('discovery-token', transport=transport))
    return seen


class TestEngagementRate:

    def test_rate_is_percentage_of_followers(self):
        assert engagement_rate(900, 100, 20000) == 5.0

    def test_no_followers(self):
        assert engagement_rate(10, 1, 0) is None
        assert engagement_rate(10, 1, None) is None


class TestDeepAnalysis:
    """Tests for CreatorAnalysisService.get_analysis / refresh_analysis."""

    def test_analysis_from_graph(self, app, sample_creator):
        service, seen = make_service(found())
        analysis = service.get_analysis(sample_creator.id)

        assert 'business_discovery.username(ana.cria)' in seen[0].url.params['fields']
        assert seen[0].url.params['access_token'] == 'discovery-token'

        instagram = analysis['instagram']
        assert instagram['live'] is True
        assert instagram['profile']['followers'] == 20000
        assert instagram['profile']['posts_count'] == 128
        assert instagram['stats'] == {
            'total_likes': 1150,
            'total_comments': 170,
            'avg_engagement': 2.2,
            'posts_analyzed': 3,
        }
        assert [p['post_type'] for p in instagram['recent_posts']] == ['reel', 'image', 'carousel']
        assert instagram['recent_posts'][0]['hashtags'] == ['moda', 'verao']
        assert instagram['recent_posts'][0]['mentions'] == ['marcabela']
        assert instagram['recent_posts'][1]['thumbnail_url'] == 'https://cdn.example.com/m2.jpg'
        assert instagram['top_hashtags'] == [
            {'hashtag': 'moda', 'usage_count': 2, 'avg_engagement': 3.25},
            {'hashtag': 'verao', 'usage_count': 1, 'avg_engagement': 5.0},
        ]
        assert instagram['last_updated'] is not None

    def test_refresh_updates_creator_record(self, app, sample_creator):
        service, _ = make_service(found())
        analysis = service.refresh_analysis(sample_creator.id)

        creator = User.query.get(sample_creator.id)
        assert creator.instagram_followers == 20000
        assert creator.instagram_following == 310
        assert creator.instagram_posts == 128
        assert creator.instagram_engagement_rate == 2.2
        assert creator.avatar_url == 'https://cdn.example.com/ana.jpg'
        assert creator.instagram_last_updated is not None
        assert analysis['creator']['instagram_followers'] == 20000

    def test_analysis_is_cached_until_refresh(self, app, sample_creator):
        service, seen = make_service(found())

        service.get_analysis(sample_creator.id)
        service.get_analysis(sample_creator.id)
        assert len(seen) == 1

        service.refresh_analysis(sample_creator.id, 'both')
        assert len(seen) == 2

    def test_hidden_profile_falls_back_to_stored_numbers(self, app, sample_creator):
        service, seen = make_service(NOT_FOUND)

        analysis = service.get_analysis(sample_creator.id)
        assert analysis['instagram']['live'] is False
        assert analysis['instagram']['profile']['followers'] == 15000
        assert analysis['instagram']['profile']['engagement_rate'] == 4.2
        assert analysis['instagram']['recent_posts'] == []
        assert analysis['instagram']['stats']['avg_engagement'] is None

        # Fallbacks are not cached
        service.get_analysis(sample_creator.id)
        assert len(seen) == 2

    def test_creator_without_instagram_skips_graph(self, app, db, sample_creator):
        sample_creator.instagram = None
        db.session.commit()
        service, seen = make_service(found())

        analysis = service.get_analysis(sample_creator.id)
        assert seen == []
        assert analysis['instagram']['live'] is False

        with pytest.raises(ValidationError) as exc:
            service.refresh_analysis(sample_creator.id)
        assert exc.value.code == 'INVALID_INSTAGRAM'

    def test_graph_outage_raises(self, app, sample_creator):
        service, _ = make_service(httpx.Response(500, json={'error': {'message': 'Service unavailable', 'code': 2}}))
        with pytest.raises(ExternalServiceError):
            service.get_analysis(sample_creator.id)

    def test_refresh_other_platform_rejected(self, app, sample_creator):
        service, seen = make_service(found())
        with pytest.raises(ValidationError) as exc:
            service.refresh_analysis(sample_creator.id, 'tiktok')
        assert exc.value.code == 'INVALID_PLATFORM'
        assert seen == []

    def test_company_user_is_not_a_creator(self, app, sample_company_user):
        service, _ = make_service(found())
        with pytest.raises(NotFoundError) as exc:
            service.get_analysis(sample_company_user.id)
        assert exc.value.code == 'CREATOR_NOT_FOUND'


class TestValidateInstagram:

    def test_existing_profile(self, app):
        service, seen = make_service(found())
        result = service.validate_instagram('@Ana.Cria ')

        assert 'business_discovery.username(ana.cria)' in seen[0].url.params['fields']
        assert result['exists'] is True
        assert result['username'] == 'ana.cria'
        assert result['followers'] == 20000
        assert result['engagement_rate'] == 2.2
        assert result['ig_user_id'] == '1789000001'

    def test_unknown_profile(self, app):
        service, _ = make_service(NOT_FOUND)
        assert service.validate_instagram('ninguem.aqui') == {'exists': False, 'username': 'ninguem.aqui'}

    @pytest.mark.parametrize('username', ['', None, 'ana cria', 'ana..cria', 'a' * 31])
    def test_invalid_username(self, app, username):
        service, seen = make_service(found())
        with pytest.raises(ValidationError) as exc:
            service.validate_instagram(username)
        assert exc.value.code == 'INVALID_USERNAME'
        assert seen == []


class TestAnalysisApi:
    """Tests for the deep analysis and validation routes."""

    def test_company_staff_can_view(self, client, auth_headers, sample_creator, graph):
        response = client.get(f'/api/creators/{sample_creator.id}/deep-analysis', headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body['creator']['name'] == 'Ana Criadora'
        assert body['instagram']['stats']['posts_analyzed'] == 3

    def test_creator_views_own_analysis(self, client, creator_headers, sample_creator, graph):
        response = client.get(f'/api/creators/{sample_creator.id}/deep-analysis', headers=creator_headers)
        assert response.status_code == 200

    def test_other_creator_is_forbidden(self, client, headers_for, sample_creator, other_creator, graph):
        response = client.get(f'/api/creators/{sample_creator.id}/deep-analysis',
                              headers=headers_for(other_creator))
        assert response.status_code == 403
        assert graph == []

    def test_company_user_without_membership_is_forbidden(self, client, db, headers_for, sample_creator, graph):
        outsider = User(name='Fora', email='fora@outra.com.br', role='company')
        db.session.add(outsider)
        db.session.commit()

        response = client.get(f'/api/creators/{sample_creator.id}/deep-analysis', headers=headers_for(outsider))
        assert response.status_code == 403

    def test_unknown_creator(self, client, auth_headers, graph):
        response = client.get('/api/creators/9999/deep-analysis', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'CREATOR_NOT_FOUND'

    def test_refresh(self, client, auth_headers, sample_creator, graph):
        client.get(f'/api/creators/{sample_creator.id}/deep-analysis', headers=auth_headers)
        response = client.post(f'/api/creators/{sample_creator.id}/refresh-analysis',
                               headers=auth_headers, json={'platform': 'instagram'})

        assert response.status_code == 200
        assert response.get_json()['success'] is True
        assert response.get_json()['analysis']['instagram']['live'] is True
        assert len(graph) == 2

    def test_meta_not_configured(self, app, client, auth_headers, sample_creator):
        app.config['META_ACCESS_TOKEN'] = ''
        response = client.get(f'/api/creators/{sample_creator.id}/deep-analysis', headers=auth_headers)
        assert response.status_code == 502
        assert response.get_json()['error']['code'] == 'EXTERNAL_SERVICE_ERROR'

    def test_validate_instagram(self, client, creator_headers, graph):
        response = client.post('/api/social/validate-instagram', headers=creator_headers,
                               json={'username': 'https://www.instagram.com/ana.cria/'})
        assert response.status_code == 200
        assert response.get_json()['exists'] is True
        assert response.get_json()['posts_count'] == 128

    def test_validate_instagram_bad_username(self, client, creator_headers, graph):
        response = client.post('/api/social/validate-instagram', headers=creator_headers, json={'username': 'ana cria'})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_USERNAME'

    def test_validate_requires_login(self, client, graph):
        response = client.post('/api/social/validate-instagram', json={'username': 'ana.cria'})
        assert response.status_code == 401
