"""
Creator discovery for company dashboards.

Search over creator accounts with audience filters, company favorites and
saved Instagram prospect profiles.
"""
import logging
import math
from typing import Optional, List, Dict, Any

from sqlalchemy import or_, func

from ..extensions import db
from ..models import User, FavoriteCreator, CreatorDiscoveryProfile, Application
from ..utils.exceptions import NotFoundError, ValidationError, DuplicateError
from .matching_service import matches_age_ranges

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    'followers': User.instagram_followers.desc(),
    'engagement': User.instagram_engagement_rate.desc(),
    'recent': User.created_at.desc(),
    'name': User.name.asc(),
}
MAX_PAGE_SIZE = 100


def _int_arg(filters: Dict[str, Any], key: str) -> Optional[int]:
    value = filters.get(key)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', key)


def _float_arg(filters: Dict[str, Any], key: str) -> Optional[float]:
    value = filters.get(key)
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', key)


class DiscoveryService:
    """Creator search, favorites and saved prospect profiles for one company."""

    def __init__(self, company_id: int):
        self.company_id = company_id

    def favorite_ids(self) -> List[int]:
        return [f.creator_id for f in FavoriteCreator.query.filter_by(company_id=self.company_id).all()]

    def search_creators(self, filters: Dict[str, Any], page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """
        Paginated creator search.

        Filters (all optional): query, niche, minFollowers, maxFollowers,
        gender, ageRange, minEngagement, state, favoritesOnly, sortBy.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        query = User.query.filter(User.role == 'creator', User.is_banned.is_(False))

        text = (filters.get('query') or '').strip()
        if text:
            like = f'%{text}%'
            query = query.filter(or_(User.name.ilike(like), User.instagram.ilike(like), User.bio.ilike(like)))

        min_followers = _int_arg(filters, 'minFollowers')
        if min_followers is not None:
            query = query.filter(User.instagram_followers >= min_followers)
        max_followers = _int_arg(filters, 'maxFollowers')
        if max_followers is not None:
            query = query.filter(User.instagram_followers <= max_followers)
        min_engagement = _float_arg(filters, 'minEngagement')
        if min_engagement is not None:
            query = query.filter(User.instagram_engagement_rate >= min_engagement)
        if filters.get('gender'):
            query = query.filter(User.gender == filters['gender'])
        if filters.get('state'):
            query = query.filter(User.state == filters['state'].upper())

        favorites = set(self.favorite_ids())
        if str(filters.get('favoritesOnly')).lower() == 'true':
            query = query.filter(User.id.in_(favorites or [0]))

        query = query.order_by(SORT_OPTIONS.get(filters.get('sortBy'), SORT_OPTIONS['followers']), User.id)
        creators = query.all()

        # niche is a JSON list and age needs date math, so both filter in Python
        niche = (filters.get('niche') or '').strip().lower()
        if niche:
            creators = [c for c in creators if niche in [n.lower() for n in (c.niche or [])]]
        if filters.get('ageRange'):
            creators = [c for c in creators if matches_age_ranges(c, [filters['ageRange']])]

        total = len(creators)
        page_items = creators[(page - 1) * limit:page * limit]
        counts = self._campaign_counts([c.id for c in page_items])

        data = []
        for creator in page_items:
            item = creator.to_dict()
            item['campaignsCount'] = counts.get(creator.id, 0)
            item['isFavorite'] = creator.id in favorites
            data.append(item)

        return {
            'data': data,
            'total': total,
            'page': page,
            'totalPages': math.ceil(total / limit) if total else 0,
        }

    def _campaign_counts(self, creator_ids: List[int]) -> Dict[int, int]:
        if not creator_ids:
            return {}
        rows = db.session.query(Application.creator_id, func.count(Application.id)) \
            .filter(Application.creator_id.in_(creator_ids), Application.status == 'accepted') \
            .group_by(Application.creator_id).all()
        return {creator_id: count for creator_id, count in rows}

    # ==================== Favorites ====================

    def add_favorite(self, creator_id: int) -> FavoriteCreator:
        creator = User.query.get(creator_id)
        if not creator or creator.role != 'creator':
            raise NotFoundError('Creator', creator_id)
        existing = FavoriteCreator.query.filter_by(company_id=self.company_id, creator_id=creator_id).first()
        if existing:
            return existing
        favorite = FavoriteCreator(company_id=self.company_id, creator_id=creator_id)
        db.session.add(favorite)
        db.session.commit()
        return favorite

    def remove_favorite(self, creator_id: int) -> bool:
        deleted = FavoriteCreator.query.filter_by(company_id=self.company_id, creator_id=creator_id).delete()
        db.session.commit()
        return bool(deleted)

    # ==================== Saved profiles ====================

    def list_profiles(self) -> List[CreatorDiscoveryProfile]:
        return CreatorDiscoveryProfile.query.filter_by(company_id=self.company_id) \
            .order_by(CreatorDiscoveryProfile.created_at.desc()).all()

    def save_profile(self, data: Dict[str, Any]) -> CreatorDiscoveryProfile:
        handle = (data.get('instagram_handle') or '').strip().lstrip('@').lower()
        if not handle:
            raise ValidationError('instagram_handle is required', 'instagram_handle')
        if CreatorDiscoveryProfile.query.filter_by(company_id=self.company_id, instagram_handle=handle).first():
            raise DuplicateError('Profile', handle)

        linked = User.query.filter(func.lower(User.instagram) == handle, User.role == 'creator').first()
        profile = CreatorDiscoveryProfile(
            company_id=self.company_id,
            instagram_handle=handle,
            display_name=data.get('display_name'),
            followers=data.get('followers'),
            engagement_rate=data.get('engagement_rate'),
            bio=data.get('bio'),
            category=data.get('category'),
            profile_pic_url=data.get('profile_pic_url'),
            linked_user_id=linked.id if linked else None,
        )
        db.session.add(profile)
        db.session.commit()
        return profile

    def delete_profile(self, profile_id: int) -> None:
        profile = CreatorDiscoveryProfile.query.filter_by(id=profile_id, company_id=self.company_id).first()
        if not profile:
            raise NotFoundError('Profile', profile_id)
        db.session.delete(profile)
        db.session.commit()
