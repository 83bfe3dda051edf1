"""
Creator Analysis Service for CreatorConnect.

Builds the deep analysis companies see before inviting a creator (and
creators see on their own dashboard):
- Instagram profile numbers and the most recent posts, read through the
  Graph API `business_discovery` field
- Per-post and average engagement, totals and top hashtags
- Stored profile numbers refreshed on the creator record

Analyses are cached per creator; a refresh drops the cached copy and
reads the Graph API again.
"""
import logging
import re
from collections import Counter
from datetime import datetime
from typing import Optional, Dict, Any, List

from flask import current_app

from ..extensions import db
from ..models import User
from ..utils.cache import cache
from ..utils.exceptions import ValidationError, NotFoundError, ExternalServiceError
from ..utils.validators import clean_instagram_handle
from .meta_client import MetaGraphClient, GraphApiError

logger = logging.getLogger(__name__)

RECENT_POSTS_LIMIT = 12
TOP_HASHTAGS_LIMIT = 10

# "Invalid user id" / "Cannot find User": unknown, personal or private account
PROFILE_NOT_FOUND_CODES = {110}
PROFILE_NOT_FOUND_SUBCODES = {2207013}

MEDIA_FIELDS = ('id,caption,like_count,comments_count,media_type,media_product_type,'
                'permalink,thumbnail_url,media_url,timestamp')
PROFILE_FIELDS = 'id,username,name,biography,profile_picture_url,followers_count,follows_count,media_count'

HASHTAG_RE = re.compile(r'#(\w+)', re.UNICODE)
MENTION_RE = re.compile(r'@([\w.]+)', re.UNICODE)


def _cache_key(creator_id: int) -> str:
    return f'creator_analysis:{creator_id}'


def discovery_client() -> MetaGraphClient:
    return MetaGraphClient(
        current_app.config.get('META_ACCESS_TOKEN'),
        current_app.config.get('META_GRAPH_API_VERSION', 'v21.0'),
    )


def _post_type(media: Dict[str, Any]) -> str:
    if media.get('media_product_type') == 'REELS':
        return 'reel'
    return {'CAROUSEL_ALBUM': 'carousel', 'VIDEO': 'video'}.get(media.get('media_type'), 'image')


def engagement_rate(likes: int, comments: int, followers: Optional[int]) -> Optional[float]:
    """(likes + comments) / followers as a percentage, two decimals."""
    if not followers:
        return None
    return round((likes + comments) / followers * 100, 2)


class CreatorAnalysisService:
    """Instagram analysis for creators, cached per creator."""

    def __init__(self, client: Optional[MetaGraphClient] = None, business_id: Optional[str] = None):
        self._client = client
        self._business_id = business_id

    @property
    def client(self) -> MetaGraphClient:
        if self._client is None:
            self._client = discovery_client()
        return self._client

    @property
    def business_id(self) -> str:
        business_id = self._business_id or current_app.config.get('META_DISCOVERY_BUSINESS_ID')
        if not business_id:
            raise ExternalServiceError('Meta', 'discovery account not configured')
        return business_id

    # ==================== Graph API ====================

    def fetch_instagram_profile(self, username: str) -> Optional[Dict[str, Any]]:
        """
        Public profile and recent media of a business or creator account.

        Returns None when Instagram does not expose the account (unknown,
        personal or private). Other Graph failures raise ExternalServiceError.
        """
        fields = (f'business_discovery.username({username})'
                  f'{{{PROFILE_FIELDS},media.limit({RECENT_POSTS_LIMIT}){{{MEDIA_FIELDS}}}}}')
        try:
            body = self.client.get(self.business_id, {'fields': fields})
        except GraphApiError as e:
            if e.graph_code in PROFILE_NOT_FOUND_CODES or e.graph_subcode in PROFILE_NOT_FOUND_SUBCODES:
                return None
            raise
        return body.get('business_discovery')

    def validate_instagram(self, username) -> Dict[str, Any]:
        """Check an Instagram username before it is saved on a profile or used in discovery."""
        handle = clean_instagram_handle(username)
        if not handle:
            raise ValidationError('Invalid Instagram username', 'username')

        profile = self.fetch_instagram_profile(handle)
        if profile is None:
            return {'exists': False, 'username': handle}

        posts = [self._post_dict(m, profile.get('followers_count')) for m in self._media(profile)]
        return {
            'exists': True,
            'username': profile.get('username') or handle,
            'ig_user_id': profile.get('id'),
            'name': profile.get('name'),
            'bio': profile.get('biography'),
            'profile_picture_url': profile.get('profile_picture_url'),
            'followers': profile.get('followers_count'),
            'following': profile.get('follows_count'),
            'posts_count': profile.get('media_count'),
            'engagement_rate': self._stats(posts)['avg_engagement'],
        }

    # ==================== Analysis ====================

    def _get_creator(self, creator_id: int) -> User:
        creator = User.query.get(creator_id)
        if not creator or creator.role != 'creator':
            raise NotFoundError('Creator', creator_id)
        return creator

    def get_analysis(self, creator_id: int) -> Dict[str, Any]:
        """Cached analysis, computed on first request."""
        creator = self._get_creator(creator_id)
        cached = cache.get(_cache_key(creator.id))
        if cached:
            return cached
        if not creator.instagram:
            return self._build(creator, None)
        return self._refresh(creator)

    def refresh_analysis(self, creator_id: int, platform: str = 'instagram') -> Dict[str, Any]:
        """Drop the cached analysis and read Instagram again."""
        if platform not in ('instagram', 'both'):
            raise ValidationError(f'Analysis refresh not available for {platform}', 'platform')
        creator = self._get_creator(creator_id)
        if not creator.instagram:
            raise ValidationError('Creator has no Instagram account', 'instagram')
        cache.delete(_cache_key(creator.id))
        return self._refresh(creator)

    def _refresh(self, creator: User) -> Dict[str, Any]:
        handle = clean_instagram_handle(creator.instagram)
        profile = self.fetch_instagram_profile(handle) if handle else None
        if profile is None:
            logger.info('Instagram profile @%s of creator %s not available', creator.instagram, creator.id)
            return self._build(creator, None)

        analysis = self._build(creator, profile)
        self._store_profile(creator, profile, analysis['instagram']['stats']['avg_engagement'])
        analysis['creator'] = self._creator_dict(creator)
        analysis['instagram']['last_updated'] = creator.instagram_last_updated.isoformat()

        cache.set(_cache_key(creator.id), analysis,
                  timeout=current_app.config.get('CREATOR_ANALYSIS_CACHE_SECONDS', 6 * 3600))
        return analysis

    def _store_profile(self, creator: User, profile: Dict[str, Any], avg_engagement: Optional[float]) -> None:
        creator.instagram_user_id = profile.get('id') or creator.instagram_user_id
        creator.instagram_followers = profile.get('followers_count')
        creator.instagram_following = profile.get('follows_count')
        creator.instagram_posts = profile.get('media_count')
        if avg_engagement is not None:
            creator.instagram_engagement_rate = avg_engagement
        if not creator.avatar_url:
            creator.avatar_url = profile.get('profile_picture_url')
        creator.instagram_last_updated = datetime.utcnow()
        db.session.commit()

    # ==================== Shaping ====================

    @staticmethod
    def _media(profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        return ((profile.get('media') or {}).get('data') or [])[:RECENT_POSTS_LIMIT]

    @staticmethod
    def _post_dict(media: Dict[str, Any], followers: Optional[int]) -> Dict[str, Any]:
        caption = media.get('caption') or ''
        likes = media.get('like_count') or 0
        comments = media.get('comments_count') or 0
        return {
            'post_id': media.get('id'),
            'post_url': media.get('permalink'),
            'thumbnail_url': media.get('thumbnail_url') or media.get('media_url'),
            'caption': caption or None,
            'likes': likes,
            'comments': comments,
            'engagement_rate': engagement_rate(likes, comments, followers),
            'hashtags': [tag.lower() for tag in HASHTAG_RE.findall(caption)],
            'mentions': [name.lower().rstrip('.') for name in MENTION_RE.findall(caption)],
            'posted_at': media.get('timestamp'),
            'post_type': _post_type(media),
        }

    @staticmethod
    def _stats(posts: List[Dict[str, Any]]) -> Dict[str, Any]:
        rates = [p['engagement_rate'] for p in posts if p['engagement_rate'] is not None]
        return {
            'total_likes': sum(p['likes'] for p in posts),
            'total_comments': sum(p['comments'] for p in posts),
            'avg_engagement': round(sum(rates) / len(rates), 2) if rates else None,
            'posts_analyzed': len(posts),
        }

    @staticmethod
    def _top_hashtags(posts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        usage = Counter()
        rates = {}
        for post in posts:
            for tag in set(post['hashtags']):
                usage[tag] += 1
                if post['engagement_rate'] is not None:
                    rates.setdefault(tag, []).append(post['engagement_rate'])

        ranked = sorted(usage.items(), key=lambda item: (-item[1], item[0]))[:TOP_HASHTAGS_LIMIT]
        return [
            {
                'hashtag': tag,
                'usage_count': count,
                'avg_engagement': round(sum(rates[tag]) / len(rates[tag]), 2) if rates.get(tag) else None,
            }
            for tag, count in ranked
        ]

    @staticmethod
    def _creator_dict(creator: User) -> Dict[str, Any]:
        return {
            'id': creator.id,
            'name': creator.name,
            'avatar_url': creator.avatar_url,
            'instagram': creator.instagram,
            'tiktok': creator.tiktok,
            'instagram_followers': creator.instagram_followers,
            'instagram_engagement_rate': creator.instagram_engagement_rate,
        }

    def _build(self, creator: User, profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Analysis body; without a Graph profile only the stored numbers are shown."""
        if profile is None:
            instagram_profile = {
                'followers': creator.instagram_followers,
                'following': creator.instagram_following,
                'posts_count': creator.instagram_posts,
                'engagement_rate': creator.instagram_engagement_rate,
                'verified': bool(creator.instagram_verified),
            }
            posts = []
        else:
            followers = profile.get('followers_count')
            posts = [self._post_dict(m, followers) for m in self._media(profile)]
            instagram_profile = {
                'followers': followers,
                'following': profile.get('follows_count'),
                'posts_count': profile.get('media_count'),
                'engagement_rate': None,
                'verified': bool(creator.instagram_verified),
            }

        stats = self._stats(posts)
        if profile is not None:
            instagram_profile['engagement_rate'] = stats['avg_engagement']

        last_updated = creator.instagram_last_updated
        return {
            'creator': self._creator_dict(creator),
            'instagram': {
                'profile': instagram_profile,
                'recent_posts': posts,
                'stats': stats,
                'top_hashtags': self._top_hashtags(posts),
                'last_updated': last_updated.isoformat() if last_updated else None,
                'live': profile is not None,
            },
            'tiktok': {
                'profile': {'followers': creator.tiktok_followers} if creator.tiktok else None,
            },
        }