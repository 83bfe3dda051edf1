"""
Database models for the CreatorConnect marketplace.
Brands, creators, campaigns, communities, wallets and messaging.
"""
from .user import User, FavoriteCreator
from .company import Company, CompanyMember, CompanyUserInvite
from .campaign import Campaign, Application, CampaignInvite, Deliverable
from .community import BrandTierConfig, BrandCreatorMembership, CommunityInvite
from .gamification import (
    PointsLedger,
    CampaignPointsRules,
    CampaignPrize,
    RewardEntitlement,
    CampaignMetricSnapshot,
)
from .wallet import (
    CompanyWallet,
    CreatorBalance,
    WalletTransaction,
    SalesTracking,
    CreatorCommission,
)
from .messaging import Conversation, ConversationMessage, MessageRead, InstagramMessage
from .meta_ads import CreatorAdPartner, CreatorAuthLink
from .notification import Notification, CreatorDiscoveryProfile

__all__ = [
    'User',
    'FavoriteCreator',
    'Company',
    'CompanyMember',
    'CompanyUserInvite',
    'Campaign',
    'Application',
    'CampaignInvite',
    'Deliverable',
    'BrandTierConfig',
    'BrandCreatorMembership',
    'CommunityInvite',
    'PointsLedger',
    'CampaignPointsRules',
    'CampaignPrize',
    'RewardEntitlement',
    'CampaignMetricSnapshot',
    'CompanyWallet',
    'CreatorBalance',
    'WalletTransaction',
    'SalesTracking',
    'CreatorCommission',
    'Conversation',
    'ConversationMessage',
    'MessageRead',
    'InstagramMessage',
    'CreatorAdPartner',
    'CreatorAuthLink',
    'Notification',
    'CreatorDiscoveryProfile',
]
