"""
Tests for the Instagram DM webhook, inbox and Graph API sync.
"""
import hashlib
import hmac
import json
from unittest.mock import MagicMock

import httpx
import pytest

from app.models import InstagramMessage
from app.services.instagram_service import InstagramInboxService, handle_instagram_webhook
from app.services.meta_client import MetaGraphClient
from app.utils.exceptions import ExternalServiceError

BUSINESS_ID = '17841400000001'
CREATOR_IG_ID = '99887766'


@pytest.fixture
def ig_company(db, sample_company):
    sample_company.instagram = 'marcabela'
    sample_company.instagram_business_id = BUSINESS_ID
    sample_company.instagram_access_token = 'page-token'
    db.session.commit()
    return sample_company


def webhook_payload(mid='m_1', text='Oi marca!', account_id=BUSINESS_ID):
    return {
        'object': 'instagram',
        'entry': [{
            'id': account_id,
            'time': 1714564800000,
            'messaging': [{
                'sender': {'id': CREATOR_IG_ID},
                'recipient': {'id': account_id},
                'timestamp': 1714564800000,
                'message': {'mid': mid, 'text': text},
            }],
        }],
    }


def signed_post(client, payload, secret='testing-meta-secret'):
    body = json.dumps(payload).encode('utf-8')
    signature = 'sha256=' + hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return client.post('/webhook/instagram', data=body, content_type='application/json',
                       headers={'X-Hub-Signature-256': signature})


class TestWebhookHandshake:

    def test_valid_verify_token_echoes_challenge(self, client):
        response = client.get('/webhook/instagram', query_string={
            'hub.mode': 'subscribe', 'hub.verify_token': 'testing-verify-token', 'hub.challenge': '1158201444',
        })
        assert response.status_code == 200
        assert response.get_data(as_text=True) == '1158201444'

    def test_wrong_verify_token(self, client):
        response = client.get('/webhook/instagram', query_string={
            'hub.mode': 'subscribe', 'hub.verify_token': 'nope', 'hub.challenge': '1',
        })
        assert response.status_code == 403


class TestWebhookDelivery:
    """Tests for signed message deliveries."""

    def test_bad_signature(self, client, ig_company):
        response = signed_post(client, webhook_payload(), secret='wrong-secret')
        assert response.status_code == 401
        assert InstagramMessage.query.count() == 0

    def test_missing_signature(self, client, ig_company):
        response = client.post('/webhook/instagram', json=webhook_payload())
        assert response.status_code == 401

    def test_stores_incoming_message(self, client, ig_company):
        response = signed_post(client, webhook_payload())

        assert response.status_code == 200
        assert response.get_json() == {'received': True, 'stored': 1}
        message = InstagramMessage.query.one()
        assert message.company_id == ig_company.id
        assert message.is_incoming is True
        assert message.conversation_id == f'{CREATOR_IG_ID}_{BUSINESS_ID}'

    def test_redelivery_is_ignored(self, client, ig_company):
        signed_post(client, webhook_payload())
        response = signed_post(client, webhook_payload())
        assert response.get_json()['stored'] == 0
        assert InstagramMessage.query.count() == 1

    def test_unknown_account(self, client, ig_company):
        response = signed_post(client, webhook_payload(account_id='111'))
        assert response.get_json()['stored'] == 0

    def test_other_objects_are_acknowledged(self, client, ig_company):
        response = signed_post(client, {'object': 'whatsapp_business_account', 'entry': []})
        assert response.get_json() == {'received': True, 'stored': 0}

    def test_staff_get_live_event(self, app, ig_company, sample_company_user):
        hub = MagicMock()
        assert handle_instagram_webhook(webhook_payload(mid='m_2', text='Quero parceria'), hub=hub) == 1

        staff_ids, event_type, data = hub.send_event_to_users.call_args[0]
        assert staff_ids == [sample_company_user.id]
        assert event_type == 'instagram_dm'
        assert data['messageText'] == 'Quero parceria'


class TestInbox:

    def test_inbox_endpoints(self, client, auth_headers, ig_company):
        signed_post(client, webhook_payload(mid='m_1', text='primeira'))
        signed_post(client, webhook_payload(mid='m_2', text='segunda'))

        assert client.get('/api/instagram/unread-count', headers=auth_headers).get_json() == {'count': 2}

        conversations = client.get('/api/instagram/conversations', headers=auth_headers).get_json()
        assert len(conversations) == 1
        assert conversations[0]['participant_id'] == CREATOR_IG_ID
        assert conversations[0]['unread_count'] == 2
        assert conversations[0]['message_count'] == 2

        conversation_id = conversations[0]['conversation_id']
        messages = client.get(f'/api/instagram/conversations/{conversation_id}/messages',
                              headers=auth_headers).get_json()
        assert len(messages) == 2

        response = client.post(f'/api/instagram/conversations/{conversation_id}/read', headers=auth_headers)
        assert response.get_json() == {'success': True, 'markedCount': 2}
        assert client.get('/api/instagram/unread-count', headers=auth_headers).get_json() == {'count': 0}

    def test_send_requires_recipient(self, client, auth_headers, ig_company):
        response = client.post('/api/instagram/send', headers=auth_headers, json={'text': 'oi'})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'


def graph_transport(routes):
    """httpx MockTransport answering by the last path segments."""
    seen = []

    def handler(request):
        seen.append(request)
        for suffix, answer in routes.items():
            if request.url.path.endswith(suffix):
                return answer(request) if callable(answer) else answer
        return httpx.Response(404, json={'error': {'message': 'Unknown path'}})

    return httpx.MockTransport(handler), seen


class TestGraphSync:
    """Tests for sync and send through a mocked Graph API."""

    def test_sync_pages_and_progress(self, app, ig_company):
        def conversations(request):
            if 'after' not in request.url.params:
                return httpx.Response(200, json={
                    'data': [{'id': 'c1'}],
                    'paging': {'cursors': {'after': 'CURSOR'}, 'next': 'https://graph.facebook.com/next'},
                })
            return httpx.Response(200, json={'data': [{'id': 'c2'}]})

        transport, seen = graph_transport({
            f'{BUSINESS_ID}/conversations': conversations,
            'c1/messages': httpx.Response(200, json={'data': [
                {'id': 'mid.1', 'from': {'id': CREATOR_IG_ID, 'username': 'ana.cria'},
                 'to': {'data': [{'id': BUSINESS_ID, 'username': 'marcabela'}]},
                 'message': 'Oi!', 'created_time': '2024-05-01T12:00:00+0000'},
                {'id': 'mid.2', 'from': {'id': BUSINESS_ID, 'username': 'marcabela'},
                 'to': {'data': [{'id': CREATOR_IG_ID, 'username': 'ana.cria'}]},
                 'message': 'Olá Ana', 'created_time': '2024-05-01T12:05:00+0000'},
            ]}),
            'c2/messages': httpx.Response(500, json={'error': {'message': 'Internal'}}),
        })
        hub = MagicMock()
        client = MetaGraphClient('page-token', transport=transport)
        result = InstagramInboxService(ig_company, hub=hub, client=client).sync_conversations(user_id=7)

        assert result == {'pages': 2, 'conversations': 2, 'synced': 2, 'errors': 1}
        assert all(r.url.params['access_token'] == 'page-token' for r in seen)

        by_id = {m.message_id: m for m in InstagramMessage.query.all()}
        assert by_id['mid.1'].is_incoming is True
        assert by_id['mid.1'].is_read is False
        assert by_id['mid.2'].is_incoming is False

        events = [c[0] for c in hub.send_event_to_user.call_args_list]
        assert all(user_id == 7 and event == 'dm_sync_progress' for user_id, event, _ in events)
        assert len(events) == 4
        assert events[-1][2]['done'] is True

    def test_send_direct_message(self, app, ig_company):
        transport, seen = graph_transport({
            f'{BUSINESS_ID}/messages': httpx.Response(200, json={'recipient_id': CREATOR_IG_ID, 'message_id': 'mid.sent'}),
        })
        service = InstagramInboxService(ig_company, client=MetaGraphClient('page-token', transport=transport))

        message = service.send_direct_message(CREATOR_IG_ID, 'Obrigada!')
        assert message.message_id == 'mid.sent'
        assert message.is_incoming is False
        assert json.loads(seen[0].content) == {'recipient': {'id': CREATOR_IG_ID}, 'message': {'text': 'Obrigada!'}}

    def test_graph_error_is_external_service_error(self, app):
        transport, _ = graph_transport({})
        with pytest.raises(ExternalServiceError):
            MetaGraphClient('token', transport=transport).get('me')

    def test_client_requires_token(self):
        with pytest.raises(ExternalServiceError):
            MetaGraphClient('')
