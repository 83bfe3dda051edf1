"""
Tests for brand communities: memberships, tiers and community invites.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.models import BrandCreatorMembership, CommunityInvite, Notification
from app.services.community_service import CommunityService
from app.utils.exceptions import (
    ValidationError,
    DuplicateError,
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
)


class TestMemberships:
    """Tests for add/update/remove membership."""

    def test_add_member_gets_lowest_tier(self, app, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        service.ensure_default_tiers()

        membership = service.add_member(sample_creator.id)
        assert membership.status == 'active'
        assert membership.source == 'manual'
        assert membership.tier.tier_name == 'Bronze'

    def test_add_member_rejects_unknown_source(self, app, sample_company, sample_creator):
        with pytest.raises(ValidationError):
            CommunityService(sample_company.id).add_member(sample_creator.id, source='magic')

    def test_company_user_cannot_be_member(self, app, sample_company, sample_company_user):
        with pytest.raises(NotFoundError):
            CommunityService(sample_company.id).add_member(sample_company_user.id)

    def test_remove_then_readd_reactivates(self, app, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        service.add_member(sample_creator.id)
        assert service.remove_member(sample_creator.id).status == 'archived'

        membership = service.add_member(sample_creator.id)
        assert membership.status == 'active'
        assert BrandCreatorMembership.query.count() == 1

    def test_auto_join_respects_company_flag(self, app, db, sample_company, sample_creator, sample_campaign):
        service = CommunityService(sample_company.id)
        sample_company.auto_join_community = False
        db.session.commit()
        assert service.auto_join_from_application(sample_creator.id, sample_campaign.id) is None

        sample_company.auto_join_community = True
        db.session.commit()
        membership = service.auto_join_from_application(sample_creator.id, sample_campaign.id)
        assert membership.source == 'campaign'
        assert membership.source_campaign_id == sample_campaign.id

    def test_stats(self, app, sample_company, sample_creator, other_creator):
        service = CommunityService(sample_company.id)
        service.ensure_default_tiers()
        service.add_member(sample_creator.id)
        service.add_member(other_creator.id)
        service.remove_member(other_creator.id)

        stats = service.get_stats()
        assert stats['total'] == 2
        assert stats['active'] == 1
        assert stats['by_tier'] == {'Bronze': 1}


class TestTiers:

    def test_default_tiers_created_once(self, app, sample_company):
        service = CommunityService(sample_company.id)
        service.ensure_default_tiers()
        tiers = service.ensure_default_tiers()
        assert [t.tier_name for t in tiers] == ['Bronze', 'Prata', 'Ouro']

    def test_duplicate_tier_name(self, app, sample_company):
        service = CommunityService(sample_company.id)
        service.create_tier({'tier_name': 'Diamante', 'min_points': 5000})
        with pytest.raises(DuplicateError):
            service.create_tier({'tier_name': 'Diamante', 'min_points': 6000})

    def test_negative_min_points(self, app, sample_company):
        with pytest.raises(ValidationError):
            CommunityService(sample_company.id).create_tier({'tier_name': 'X', 'min_points': -1})

    def test_new_tier_recalculates_members(self, app, db, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        service.ensure_default_tiers()
        membership = service.add_member(sample_creator.id)
        membership.points_cache = 6000
        db.session.commit()

        service.create_tier({'tier_name': 'Diamante', 'min_points': 5000})
        assert service.get_membership(sample_creator.id).tier.tier_name == 'Diamante'

    def test_delete_tier_moves_members_down(self, app, db, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        tiers = service.ensure_default_tiers()
        membership = service.add_member(sample_creator.id)
        membership.points_cache = 700
        db.session.commit()
        assert service.recalculate_tiers() == 1

        service.delete_tier(tiers[1].id)
        assert service.get_membership(sample_creator.id).tier.tier_name == 'Bronze'


class TestInvites:
    """Tests for tokenized community invites."""

    def test_invite_requires_a_target(self, app, sample_company):
        with pytest.raises(ValidationError):
            CommunityService(sample_company.id).create_invite()

    def test_invite_notifies_creator(self, app, sample_company, sample_creator):
        notifier = MagicMock()
        invite = CommunityService(sample_company.id, notifier=notifier).create_invite(creator_id=sample_creator.id)

        assert invite.status == 'sent'
        assert len(invite.token) > 30
        notifier.notify.assert_called_once()
        assert notifier.notify.call_args[0][0] == sample_creator.id
        assert notifier.notify.call_args[0][1] == 'community_invite'

    def test_invite_stores_in_app_notification(self, app, sample_company, sample_creator):
        CommunityService(sample_company.id).create_invite(creator_id=sample_creator.id)
        assert Notification.query.filter_by(user_id=sample_creator.id, type='community_invite').count() == 1

    def test_duplicate_pending_invite(self, app, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        service.create_invite(creator_id=sample_creator.id)
        with pytest.raises(DuplicateError):
            service.create_invite(creator_id=sample_creator.id)

    def test_open_then_accept(self, app, sample_company, sample_creator):
        invite = CommunityService(sample_company.id).create_invite(email='Ana@Creator.com')
        assert invite.email == 'ana@creator.com'

        opened = CommunityService.open_invite(invite.token)
        assert opened.status == 'opened'
        assert opened.opened_at is not None

        membership = CommunityService.accept_invite(invite.token, sample_creator)
        assert membership.source == 'invite'
        assert invite.status == 'accepted'
        assert invite.creator_id == sample_creator.id

    def test_accept_twice(self, app, sample_company, sample_creator):
        invite = CommunityService(sample_company.id).create_invite(instagram_handle='@ana.cria')
        assert invite.instagram_handle == 'ana.cria'
        CommunityService.accept_invite(invite.token, sample_creator)
        with pytest.raises(InvalidStatusTransitionError):
            CommunityService.accept_invite(invite.token, sample_creator)

    def test_invite_for_another_creator(self, app, sample_company, sample_creator, other_creator):
        invite = CommunityService(sample_company.id).create_invite(creator_id=sample_creator.id)
        with pytest.raises(AuthorizationError):
            CommunityService.accept_invite(invite.token, other_creator)

    def test_company_user_cannot_accept(self, app, sample_company, sample_company_user):
        invite = CommunityService(sample_company.id).create_invite(email='x@y.com')
        with pytest.raises(AuthorizationError):
            CommunityService.accept_invite(invite.token, sample_company_user)

    def test_expired_invite_cannot_be_accepted(self, app, db, sample_company, sample_creator):
        invite = CommunityService(sample_company.id).create_invite(creator_id=sample_creator.id)
        invite.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

        with pytest.raises(InvalidStatusTransitionError):
            CommunityService.accept_invite(invite.token, sample_creator)
        assert CommunityInvite.query.get(invite.id).status == 'expired'

    def test_expire_invites_job(self, app, db, sample_company, sample_creator, other_creator):
        service = CommunityService(sample_company.id)
        stale = service.create_invite(creator_id=sample_creator.id)
        fresh = service.create_invite(creator_id=other_creator.id)
        stale.expires_at = datetime.utcnow() - timedelta(days=1)
        db.session.commit()

        assert CommunityService.expire_invites() == 1
        assert CommunityInvite.query.get(stale.id).status == 'expired'
        assert CommunityInvite.query.get(fresh.id).status == 'sent'

    def test_cancel_invite(self, app, sample_company, sample_creator):
        service = CommunityService(sample_company.id)
        invite = service.create_invite(creator_id=sample_creator.id)
        assert service.cancel_invite(invite.id).status == 'cancelled'
        with pytest.raises(InvalidStatusTransitionError):
            service.cancel_invite(invite.id)
