"""
Creator <-> campaign matching.

Qualification is a hard filter (niche, age range, gender). Scoring ranks
qualified pairs from 0 to 100:

    niche         30 full match / 15 partial or no filter / 0 no overlap
    location      15 same state / 10 same region or no filter / 0
    social        up to 25 from follower tiers and Instagram engagement
    completeness  2 each for avatar, bio, portfolio, niche, city+state
"""
from typing import Dict, Any, List, Tuple

from ..models import User, Campaign
from ..utils.brazil import REGIONS, get_region_for_state
from ..utils.validators import calculate_age, parse_age_range

WILDCARD_AGE_RANGES = ('todas', 'all', '')

SOCIAL_SCORE_CAP = 25


def _lower_set(values) -> set:
    return {v.lower() for v in (values or []) if v}


def _follower_points(followers: int) -> int:
    if followers >= 100000:
        return 10
    if followers >= 10000:
        return 7
    if followers >= 1000:
        return 4
    return 2


def _engagement_points(rate: float) -> int:
    if rate >= 5:
        return 5
    if rate >= 2:
        return 3
    if rate > 0:
        return 1
    return 0


def _format_followers(followers: int) -> str:
    return f"{followers // 1000}K" if followers >= 1000 else str(followers)


def _target_region(target: str):
    if not target:
        return None
    if target.lower() in REGIONS:
        return target.lower()
    return get_region_for_state(target)


def matches_age_ranges(creator: User, age_ranges: List[str]) -> bool:
    """
    True when the creator's age falls in one of the ranges.

    Wildcards ('todas', 'all') and a list with no parseable range mean no
    age restriction. Otherwise a date of birth is required.
    """
    if not age_ranges:
        return True

    valid_ranges = []
    for value in age_ranges:
        if (value or '').strip().lower() in WILDCARD_AGE_RANGES:
            return True
        parsed = parse_age_range(value)
        if parsed:
            valid_ranges.append(parsed)

    if not valid_ranges:
        return True
    if not creator.date_of_birth:
        return False

    age = calculate_age(creator.date_of_birth)
    return any(age >= low and (high is None or age <= high) for low, high in valid_ranges)


def is_creator_qualified(creator: User, campaign: Campaign) -> bool:
    """Hard targeting filter applied before a campaign is shown to a creator."""
    if creator.role != 'creator':
        return False

    if campaign.target_niche:
        creator_niches = _lower_set(creator.niche)
        if not creator_niches or not (creator_niches & _lower_set(campaign.target_niche)):
            return False

    if not matches_age_ranges(creator, campaign.target_age_ranges or []):
        return False

    if campaign.target_gender and creator.gender != campaign.target_gender:
        return False

    return True


def score_creator_for_campaign(creator: User, campaign: Campaign) -> Dict[str, Any]:
    """
    Score how well a creator fits a campaign.

    Returns:
        {'score': int, 'breakdown': {...}, 'reasons': [...]}
    """
    breakdown = {}
    reasons = []

    # Niche
    target_niches = _lower_set(campaign.target_niche)
    creator_niches = _lower_set(creator.niche)
    if target_niches and creator_niches:
        matches = target_niches & creator_niches
        if len(matches) == len(target_niches):
            breakdown['niche'] = 30
            reasons.append('Nicho compatível')
        elif matches:
            breakdown['niche'] = 15
            reasons.append('Nicho parcialmente compatível')
        else:
            breakdown['niche'] = 0
    else:
        breakdown['niche'] = 15

    # Location
    targets = campaign.target_regions or []
    if targets and creator.state:
        state = creator.state.upper()
        creator_region = get_region_for_state(state)
        if state in {t.upper() for t in targets}:
            breakdown['location'] = 15
            reasons.append(f'Localização: {state}')
        elif creator_region and any(_target_region(t) == creator_region for t in targets):
            breakdown['location'] = 10
            reasons.append('Mesma região')
        else:
            breakdown['location'] = 0
    else:
        breakdown['location'] = 10

    # Social reach
    platforms = _lower_set(campaign.target_platforms)
    social = 0
    social_reasons = []
    if (not platforms or 'instagram' in platforms) and creator.instagram_followers:
        followers = creator.instagram_followers
        social += _follower_points(followers)
        social += _engagement_points(creator.instagram_engagement_rate or 0)
        social_reasons.append(f'IG: {_format_followers(followers)}')
    if 'tiktok' in platforms and creator.tiktok_followers:
        social += _follower_points(creator.tiktok_followers)
        social_reasons.append(f'TK: {_format_followers(creator.tiktok_followers)}')
    if 'youtube' in platforms and creator.youtube_subscribers:
        social += _follower_points(creator.youtube_subscribers)
        social_reasons.append(f'YT: {_format_followers(creator.youtube_subscribers)}')
    breakdown['social'] = min(social, SOCIAL_SCORE_CAP)
    if social_reasons:
        reasons.append(', '.join(social_reasons))

    # Profile completeness
    completeness = 0
    if creator.avatar_url:
        completeness += 2
    if creator.bio:
        completeness += 2
    if creator.portfolio_url:
        completeness += 2
    if creator.niche:
        completeness += 2
    if creator.city and creator.state:
        completeness += 2
    breakdown['completeness'] = min(completeness, 10)

    # Reserved for campaign history
    breakdown['bonus'] = 0

    return {
        'score': min(sum(breakdown.values()), 100),
        'breakdown': breakdown,
        'reasons': reasons,
    }


def get_qualified_campaigns_for_creator(creator: User) -> List[Tuple[Campaign, Dict[str, Any]]]:
    """Open public campaigns the creator qualifies for, best match first."""
    if not creator or creator.role != 'creator':
        return []

    campaigns = Campaign.query.filter_by(status='open', visibility='public') \
        .order_by(Campaign.created_at).all()

    scored = [
        (campaign, score_creator_for_campaign(creator, campaign))
        for campaign in campaigns
        if is_creator_qualified(creator, campaign)
    ]
    scored.sort(key=lambda pair: pair[1]['score'], reverse=True)
    return scored


def get_qualified_creators_for_campaign(campaign: Campaign) -> List[User]:
    """Creators to broadcast a new campaign to. Private campaigns broadcast to nobody."""
    if campaign.status != 'open' or campaign.visibility == 'private':
        return []
    creators = User.query.filter_by(role='creator', is_banned=False).all()
    return [c for c in creators if is_creator_qualified(c, campaign)]
