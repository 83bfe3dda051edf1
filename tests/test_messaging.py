"""
Tests for brand <-> creator conversations.
"""
from unittest.mock import MagicMock

import pytest

from app.models import Conversation
from app.services.messaging_service import MessagingService, MAX_MESSAGE_LENGTH
from app.utils.exceptions import ValidationError, AuthorizationError, NotFoundError


@pytest.fixture
def hub():
    return MagicMock()


@pytest.fixture
def service(hub):
    return MessagingService(hub=hub)


class TestConversations:

    def test_one_brand_conversation_per_creator(self, app, service, sample_company, sample_creator):
        first = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        second = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        assert first.id == second.id
        assert Conversation.query.count() == 1

    def test_campaign_conversation_is_separate(self, app, service, sample_company, sample_creator, sample_campaign):
        brand = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        scoped = service.get_or_create_conversation('campaign', sample_creator.id, sample_company.id, sample_campaign.id)
        assert brand.id != scoped.id
        assert scoped.campaign_id == sample_campaign.id

    def test_campaign_of_another_company(self, app, service, sample_company, sample_creator, sample_campaign):
        with pytest.raises(NotFoundError):
            service.get_or_create_conversation('campaign', sample_creator.id, sample_company.id + 1, sample_campaign.id)

    def test_campaign_type_needs_campaign(self, app, service, sample_company, sample_creator):
        with pytest.raises(ValidationError):
            service.get_or_create_conversation('campaign', sample_creator.id, sample_company.id)

    def test_outsider_cannot_read(self, app, service, sample_company, sample_creator, other_creator):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        with pytest.raises(AuthorizationError):
            service.get_conversation(conversation.id, other_creator)


class TestMessages:
    """Tests for sending, unread counts and live pushes."""

    def test_creator_message_reaches_staff(self, app, service, hub, sample_company, sample_company_user, sample_creator):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        message = service.send_message(conversation, sample_creator, '  Oi, tudo bem?  ')

        assert message.body == 'Oi, tudo bem?'
        hub.send_event_to_users.assert_called_once()
        staff_ids, event_type, payload = hub.send_event_to_users.call_args[0]
        assert staff_ids == [sample_company_user.id]
        assert event_type == 'new_message'
        assert payload['id'] == message.id

        assert service.conversation_unread_count(conversation.id, sample_company_user.id) == 1
        assert service.conversation_unread_count(conversation.id, sample_creator.id) == 0
        assert service.unread_count(sample_company_user, sample_company.id) == 1

    def test_staff_message_reaches_creator(self, app, service, hub, sample_company, sample_company_user, sample_creator):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        service.send_message(conversation, sample_company_user, 'Olá Ana!')

        hub.send_event_to_user.assert_called_once()
        assert hub.send_event_to_user.call_args[0][0] == sample_creator.id
        assert service.unread_count(sample_creator) == 1

        service.mark_as_read(conversation.id, sample_creator.id)
        assert service.unread_count(sample_creator) == 0

    def test_resolved_conversation_reopens(self, app, service, sample_company, sample_creator):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        service.set_status(conversation, 'resolved')
        service.send_message(conversation, sample_creator, 'Mais uma dúvida')
        assert conversation.status == 'open'

    @pytest.mark.parametrize('body', ['', '   ', None, 'x' * (MAX_MESSAGE_LENGTH + 1)])
    def test_invalid_body(self, app, service, sample_company, sample_creator, body):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        with pytest.raises(ValidationError):
            service.send_message(conversation, sample_creator, body)

    def test_list_messages_oldest_first(self, app, service, sample_company, sample_company_user, sample_creator):
        conversation = service.get_or_create_conversation('brand', sample_creator.id, sample_company.id)
        for text in ('um', 'dois', 'três'):
            service.send_message(conversation, sample_creator, text)

        assert [m.body for m in service.list_messages(conversation)] == ['um', 'dois', 'três']
        assert [m.body for m in service.list_messages(conversation, limit=2)] == ['dois', 'três']


class TestMessagesApi:

    def test_creator_starts_and_company_replies(self, client, creator_headers, auth_headers, sample_company):
        response = client.post('/api/messages/conversations', headers=creator_headers,
                               json={'companyId': sample_company.id})
        assert response.status_code == 201
        conversation_id = response.get_json()['id']

        response = client.post(f'/api/messages/conversations/{conversation_id}/messages',
                               headers=creator_headers, json={'body': 'Oi!'})
        assert response.status_code == 201

        inbox = client.get('/api/messages/conversations', headers=auth_headers).get_json()
        assert inbox[0]['unread_count'] == 1
        assert inbox[0]['last_message']['body'] == 'Oi!'

        detail = client.get(f'/api/messages/conversations/{conversation_id}', headers=auth_headers).get_json()
        assert [m['body'] for m in detail['messages']] == ['Oi!']
        assert client.get('/api/messages/unread-count', headers=auth_headers).get_json() == {'count': 0}

    def test_creator_cannot_change_status(self, client, creator_headers, sample_company):
        conversation_id = client.post('/api/messages/conversations', headers=creator_headers,
                                      json={'companyId': sample_company.id}).get_json()['id']
        response = client.patch(f'/api/messages/conversations/{conversation_id}/status',
                                headers=creator_headers, json={'status': 'resolved'})
        assert response.status_code == 403
