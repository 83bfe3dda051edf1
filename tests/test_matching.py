"""
Tests for creator <-> campaign qualification and match scoring.
"""
from datetime import date

from app.models import User, Campaign
from app.services.matching_service import (
    is_creator_qualified,
    matches_age_ranges,
    score_creator_for_campaign,
    get_qualified_campaigns_for_creator,
    get_qualified_creators_for_campaign,
)


def born_years_ago(years):
    return date(date.today().year - years, 1, 1)


def make_creator(**kwargs):
    defaults = dict(role='creator', name='Criadora', niche=['beauty'], gender='feminino',
                    date_of_birth=born_years_ago(27))
    defaults.update(kwargs)
    return User(**defaults)


def make_campaign(**kwargs):
    defaults = dict(title='Campanha', description='Descrição', status='open', visibility='public',
                    target_niche=[], target_age_ranges=[], target_regions=[], target_platforms=[])
    defaults.update(kwargs)
    return Campaign(**defaults)


class TestQualification:
    """Hard targeting filter."""

    def test_no_targeting_qualifies_everyone(self):
        assert is_creator_qualified(make_creator(), make_campaign()) is True

    def test_company_users_never_qualify(self):
        assert is_creator_qualified(make_creator(role='company'), make_campaign()) is False

    def test_niche_overlap_is_case_insensitive(self):
        campaign = make_campaign(target_niche=['Beauty', 'fashion'])
        assert is_creator_qualified(make_creator(niche=['beauty']), campaign) is True

    def test_niche_without_overlap(self):
        campaign = make_campaign(target_niche=['gaming'])
        assert is_creator_qualified(make_creator(niche=['beauty']), campaign) is False

    def test_niche_required_when_targeted(self):
        campaign = make_campaign(target_niche=['beauty'])
        assert is_creator_qualified(make_creator(niche=[]), campaign) is False

    def test_gender_must_match(self):
        campaign = make_campaign(target_gender='masculino')
        assert is_creator_qualified(make_creator(gender='feminino'), campaign) is False
        assert is_creator_qualified(make_creator(gender='masculino'), campaign) is True

    def test_age_range_match(self):
        campaign = make_campaign(target_age_ranges=['25-34'])
        assert is_creator_qualified(make_creator(date_of_birth=born_years_ago(30)), campaign) is True
        assert is_creator_qualified(make_creator(date_of_birth=born_years_ago(40)), campaign) is False

    def test_open_ended_range(self):
        campaign = make_campaign(target_age_ranges=['55+'])
        assert is_creator_qualified(make_creator(date_of_birth=born_years_ago(60)), campaign) is True


class TestAgeRanges:

    def test_missing_birth_date_fails_real_range(self):
        assert matches_age_ranges(make_creator(date_of_birth=None), ['18-24']) is False

    def test_wildcard_accepts_missing_birth_date(self):
        assert matches_age_ranges(make_creator(date_of_birth=None), ['todas']) is True

    def test_only_invalid_ranges_means_no_restriction(self):
        assert matches_age_ranges(make_creator(date_of_birth=None), ['abc', '40-30']) is True

    def test_empty_list_means_no_restriction(self):
        assert matches_age_ranges(make_creator(date_of_birth=None), []) is True

    def test_invalid_entries_are_ignored_next_to_valid_ones(self):
        creator = make_creator(date_of_birth=born_years_ago(20))
        assert matches_age_ranges(creator, ['xx', '18-24']) is True


class TestScoring:
    """Match score breakdown."""

    def test_full_niche_match(self):
        result = score_creator_for_campaign(make_creator(niche=['beauty']), make_campaign(target_niche=['beauty']))
        assert result['breakdown']['niche'] == 30
        assert 'Nicho compatível' in result['reasons']

    def test_partial_niche_match(self):
        campaign = make_campaign(target_niche=['beauty', 'fashion'])
        result = score_creator_for_campaign(make_creator(niche=['beauty']), campaign)
        assert result['breakdown']['niche'] == 15

    def test_same_state_beats_same_region(self):
        campaign = make_campaign(target_regions=['SP'])
        same_state = score_creator_for_campaign(make_creator(state='SP'), campaign)
        same_region = score_creator_for_campaign(make_creator(state='RJ'), campaign)
        elsewhere = score_creator_for_campaign(make_creator(state='RS'), campaign)
        assert same_state['breakdown']['location'] == 15
        assert same_region['breakdown']['location'] == 10
        assert elsewhere['breakdown']['location'] == 0

    def test_region_target(self):
        campaign = make_campaign(target_regions=['sul'])
        result = score_creator_for_campaign(make_creator(state='RS'), campaign)
        assert result['breakdown']['location'] == 10

    def test_social_points_and_cap(self):
        creator = make_creator(
            instagram_followers=250000, instagram_engagement_rate=6.0,
            tiktok_followers=500000, youtube_subscribers=200000,
        )
        campaign = make_campaign(target_platforms=['instagram', 'tiktok', 'youtube'])
        result = score_creator_for_campaign(creator, campaign)
        assert result['breakdown']['social'] == 25
        assert 'IG: 250K' in result['reasons'][-1]

    def test_completeness(self):
        creator = make_creator(avatar_url='a.png', bio='Oi', portfolio_url='https://ana.com',
                               city='Campinas', state='SP')
        result = score_creator_for_campaign(creator, make_campaign())
        assert result['breakdown']['completeness'] == 10

    def test_score_is_sum_of_breakdown(self, sample_creator, sample_campaign):
        result = score_creator_for_campaign(sample_creator, sample_campaign)
        assert result['score'] == sum(result['breakdown'].values())
        assert 0 <= result['score'] <= 100


class TestQueries:

    def test_qualified_campaigns_for_creator(self, sample_creator, sample_campaign, db, sample_company):
        other = Campaign(company_id=sample_company.id, title='Games', description='x',
                         target_niche=['gaming'], status='open', visibility='public')
        db.session.add(other)
        db.session.commit()

        results = get_qualified_campaigns_for_creator(sample_creator)
        assert [c.id for c, _ in results] == [sample_campaign.id]

    def test_private_campaigns_broadcast_to_nobody(self, sample_creator, sample_campaign, db):
        sample_campaign.visibility = 'private'
        db.session.commit()
        assert get_qualified_creators_for_campaign(sample_campaign) == []

    def test_qualified_creators_for_campaign(self, sample_creator, other_creator, sample_campaign):
        creators = get_qualified_creators_for_campaign(sample_campaign)
        assert sample_creator in creators
        assert other_creator not in creators
