"""
Business logic services for the CreatorConnect marketplace.
"""
from .campaign_service import CampaignService, campaign_service
from .community_service import CommunityService
from .points_service import PointsService
from .reward_service import RewardService
from .wallet_service import WalletService, wallet_service
from .notification_service import NotificationService, notification_service
from .messaging_service import messaging_service
from .enrichment_service import EnrichmentService, enrichment_service
from .creator_analysis_service import CreatorAnalysisService

__all__ = [
    'CampaignService',
    'campaign_service',
    'CommunityService',
    'PointsService',
    'RewardService',
    'WalletService',
    'wallet_service',
    'NotificationService',
    'notification_service',
    'messaging_service',
    'EnrichmentService',
    'enrichment_service',
    'CreatorAnalysisService',
]
