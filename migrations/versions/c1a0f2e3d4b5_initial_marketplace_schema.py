"""Initial marketplace schema (users, companies, campaigns, community, wallet, messaging).

Revision ID: c1a0f2e3d4b5
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c1a0f2e3d4b5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    """Create every table of the marketplace."""
    # Accounts and companies
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='creator'),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('gender', sa.String(30), nullable=True),
        sa.Column('niche', sa.JSON(), nullable=True),
        sa.Column('portfolio_url', sa.String(500), nullable=True),
        sa.Column('instagram', sa.String(100), nullable=True),
        sa.Column('instagram_user_id', sa.String(50), nullable=True),
        sa.Column('instagram_followers', sa.Integer(), nullable=True),
        sa.Column('instagram_following', sa.Integer(), nullable=True),
        sa.Column('instagram_posts', sa.Integer(), nullable=True),
        sa.Column('instagram_engagement_rate', sa.Float(), nullable=True),
        sa.Column('instagram_verified', sa.Boolean(), server_default='false'),
        sa.Column('instagram_last_updated', sa.DateTime(), nullable=True),
        sa.Column('tiktok', sa.String(100), nullable=True),
        sa.Column('tiktok_followers', sa.Integer(), nullable=True),
        sa.Column('youtube', sa.String(100), nullable=True),
        sa.Column('youtube_subscribers', sa.Integer(), nullable=True),
        sa.Column('pix_key', sa.String(150), nullable=True),
        sa.Column('cpf', sa.String(14), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('cep', sa.String(9), nullable=True),
        sa.Column('street', sa.String(200), nullable=True),
        sa.Column('number', sa.String(20), nullable=True),
        sa.Column('neighborhood', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(2), nullable=True),
        sa.Column('complement', sa.String(100), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default='false'),
        sa.Column('is_banned', sa.Boolean(), server_default='false'),
        sa.Column('active_company_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('trade_name', sa.String(200), nullable=True),
        sa.Column('slug', sa.String(120), nullable=True),
        sa.Column('cnpj', sa.String(14), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tagline', sa.String(200), nullable=True),
        sa.Column('category', sa.String(30), nullable=True),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('website', sa.String(300), nullable=True),
        sa.Column('instagram', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('cep', sa.String(9), nullable=True),
        sa.Column('street', sa.String(200), nullable=True),
        sa.Column('number', sa.String(20), nullable=True),
        sa.Column('neighborhood', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(2), nullable=True),
        sa.Column('complement', sa.String(100), nullable=True),
        sa.Column('is_discoverable', sa.Boolean(), server_default='true'),
        sa.Column('is_featured', sa.Boolean(), server_default='false'),
        sa.Column('auto_join_community', sa.Boolean(), server_default='true'),
        sa.Column('onboarding_completed', sa.Boolean(), server_default='false'),
        sa.Column('instagram_access_token', sa.Text(), nullable=True),
        sa.Column('instagram_business_id', sa.String(50), nullable=True),
        sa.Column('cnpj_razao_social', sa.String(300), nullable=True),
        sa.Column('cnpj_nome_fantasia', sa.String(300), nullable=True),
        sa.Column('cnpj_situacao', sa.String(50), nullable=True),
        sa.Column('cnpj_atividade_principal', sa.String(300), nullable=True),
        sa.Column('cnpj_data_abertura', sa.String(20), nullable=True),
        sa.Column('cnpj_capital_social', sa.String(50), nullable=True),
        sa.Column('cnpj_natureza_juridica', sa.String(200), nullable=True),
        sa.Column('cnpj_qsa', sa.JSON(), nullable=True),
        sa.Column('cnpj_last_updated', sa.DateTime(), nullable=True),
        sa.Column('website_title', sa.String(300), nullable=True),
        sa.Column('website_description', sa.Text(), nullable=True),
        sa.Column('website_content', sa.Text(), nullable=True),
        sa.Column('website_about', sa.Text(), nullable=True),
        sa.Column('website_keywords', sa.JSON(), nullable=True),
        sa.Column('instagram_followers', sa.Integer(), nullable=True),
        sa.Column('instagram_bio', sa.Text(), nullable=True),
        sa.Column('instagram_profile_pic', sa.String(500), nullable=True),
        sa.Column('structured_briefing', sa.JSON(), nullable=True),
        sa.Column('ecommerce_product_count', sa.Integer(), nullable=True),
        sa.Column('ecommerce_categories', sa.JSON(), nullable=True),
        sa.Column('enrichment_score', sa.Integer(), server_default='0'),
        sa.Column('last_enriched_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
    )
    op.create_index('ix_companies_slug', 'companies', ['slug'], unique=True)
    op.create_index('ix_companies_cnpj', 'companies', ['cnpj'])

    op.create_table(
        'company_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('company_id', 'user_id', name='uq_company_member'),
    )

    op.create_table(
        'company_user_invites',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), server_default='member'),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('invited_by_user_id', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['invited_by_user_id'], ['users.id']),
        sa.UniqueConstraint('token'),
    )

    op.create_table(
        'favorite_creators',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('company_id', 'creator_id', name='uq_favorite_creator'),
    )

    # Community tiers come before campaigns (campaigns.min_tier_id)
    op.create_table(
        'brand_tier_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('tier_name', sa.String(50), nullable=False),
        sa.Column('min_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('color', sa.String(20), server_default='#6366f1'),
        sa.Column('icon', sa.String(50), server_default='star'),
        sa.Column('benefits', sa.JSON(), nullable=True),
        sa.Column('sort_order', sa.Integer(), server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
    )
    op.create_index('ix_brand_tier_configs_company_id', 'brand_tier_configs', ['company_id'])

    # Campaigns
    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.JSON(), nullable=True),
        sa.Column('deliverable_types', sa.JSON(), nullable=True),
        sa.Column('budget', sa.String(100), nullable=True),
        sa.Column('deadline', sa.Date(), nullable=True),
        sa.Column('creators_needed', sa.Integer(), server_default='1'),
        sa.Column('target_niche', sa.JSON(), nullable=True),
        sa.Column('target_age_ranges', sa.JSON(), nullable=True),
        sa.Column('target_regions', sa.JSON(), nullable=True),
        sa.Column('target_gender', sa.String(30), nullable=True),
        sa.Column('target_platforms', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(20), server_default='open'),
        sa.Column('visibility', sa.String(20), server_default='public'),
        sa.Column('min_tier_id', sa.Integer(), nullable=True),
        sa.Column('min_points', sa.Integer(), server_default='0'),
        sa.Column('allowed_tiers', sa.JSON(), nullable=True),
        sa.Column('reward_mode', sa.String(20), server_default='ranking'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['min_tier_id'], ['brand_tier_configs.id']),
    )
    op.create_index('ix_campaigns_company_id', 'campaigns', ['company_id'])

    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('creator_workflow_status', sa.String(30), nullable=True),
        sa.Column('seeding_status', sa.String(20), server_default='not_required'),
        sa.Column('seeding_tracking_code', sa.String(100), nullable=True),
        sa.Column('applied_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('campaign_id', 'creator_id', name='uq_application_campaign_creator'),
    )
    op.create_index('ix_applications_campaign_id', 'applications', ['campaign_id'])
    op.create_index('ix_applications_creator_id', 'applications', ['creator_id'])

    op.create_table(
        'campaign_invites',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('campaign_id', 'creator_id', name='uq_campaign_invite'),
    )
    op.create_index('ix_campaign_invites_creator_id', 'campaign_invites', ['creator_id'])

    op.create_table(
        'deliverables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('deliverable_type', sa.String(30), nullable=False),
        sa.Column('url', sa.String(500), nullable=True),
        sa.Column('post_id', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default='submitted'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
    )

    # Brand communities
    op.create_table(
        'brand_creator_memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='active'),
        sa.Column('source', sa.String(20), server_default='manual'),
        sa.Column('source_campaign_id', sa.Integer(), nullable=True),
        sa.Column('tier_id', sa.Integer(), nullable=True),
        sa.Column('points_cache', sa.Integer(), server_default='0'),
        sa.Column('coupon_code', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.ForeignKeyConstraint(['source_campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['tier_id'], ['brand_tier_configs.id']),
        sa.UniqueConstraint('company_id', 'creator_id', name='uq_brand_creator_membership'),
    )
    op.create_index('ix_brand_creator_memberships_company_id', 'brand_creator_memberships', ['company_id'])
    op.create_index('ix_brand_creator_memberships_creator_id', 'brand_creator_memberships', ['creator_id'])

    op.create_table(
        'community_invites',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('instagram_handle', sa.String(100), nullable=True),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), server_default='sent'),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('opened_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_community_invites_company_id', 'community_invites', ['company_id'])

    # Wallet (before reward_entitlements, which points at wallet_transactions)
    op.create_table(
        'company_wallets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reserved_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('billing_cycle_start', sa.Date(), nullable=True),
        sa.Column('billing_cycle_end', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.UniqueConstraint('company_id'),
    )

    op.create_table(
        'creator_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('available_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pending_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pix_key', sa.String(150), nullable=True),
        sa.Column('pix_key_type', sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_wallet_id', sa.Integer(), nullable=True),
        sa.Column('creator_balance_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), server_default='completed'),
        sa.Column('description', sa.String(300), nullable=True),
        sa.Column('related_user_id', sa.Integer(), nullable=True),
        sa.Column('related_campaign_id', sa.Integer(), nullable=True),
        sa.Column('related_application_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_wallet_id'], ['company_wallets.id']),
        sa.ForeignKeyConstraint(['creator_balance_id'], ['creator_balances.id']),
        sa.ForeignKeyConstraint(['related_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['related_campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['related_application_id'], ['applications.id']),
    )
    op.create_index('ix_wallet_transactions_company_wallet_id', 'wallet_transactions', ['company_wallet_id'])
    op.create_index('ix_wallet_transactions_creator_balance_id', 'wallet_transactions', ['creator_balance_id'])
    op.create_index('ix_wallet_transactions_created_at', 'wallet_transactions', ['created_at'])

    op.create_table(
        'sales_tracking',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(100), nullable=False),
        sa.Column('order_value', sa.Integer(), nullable=False),
        sa.Column('commission_rate_bps', sa.Integer(), server_default='0'),
        sa.Column('commission_value', sa.Integer(), server_default='0'),
        sa.Column('coupon_code', sa.String(50), nullable=True),
        sa.Column('platform', sa.String(30), server_default='manual'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('company_id', 'order_id', name='uq_sale_order'),
    )
    op.create_index('ix_sales_tracking_company_id', 'sales_tracking', ['company_id'])
    op.create_index('ix_sales_tracking_creator_id', 'sales_tracking', ['creator_id'])

    op.create_table(
        'creator_commissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales_tracking.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
    )
    op.create_index('ix_creator_commissions_creator_id', 'creator_commissions', ['creator_id'])

    # Gamification
    op.create_table(
        'points_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('delta_points', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('ref_type', sa.String(50), nullable=True),
        sa.Column('ref_id', sa.String(100), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('campaign_id', 'creator_id', 'event_type', 'ref_type', 'ref_id',
                            name='uq_points_ledger_event'),
    )
    op.create_index('ix_points_ledger_company_id', 'points_ledger', ['company_id'])
    op.create_index('ix_points_ledger_campaign_id', 'points_ledger', ['campaign_id'])
    op.create_index('ix_points_ledger_creator_id', 'points_ledger', ['creator_id'])
    op.create_index('ix_points_ledger_created_at', 'points_ledger', ['created_at'])

    op.create_table(
        'campaign_points_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('rules', sa.JSON(), nullable=True),
        sa.Column('overrides_brand', sa.Boolean(), server_default='false'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.UniqueConstraint('campaign_id'),
    )

    op.create_table(
        'campaign_prizes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('rank_position', sa.Integer(), nullable=True),
        sa.Column('milestone_points', sa.Integer(), nullable=True),
        sa.Column('reward_kind', sa.String(20), server_default='cash'),
        sa.Column('cash_amount', sa.Integer(), server_default='0'),
        sa.Column('product_sku', sa.String(100), nullable=True),
        sa.Column('product_description', sa.String(300), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
    )
    op.create_index('ix_campaign_prizes_campaign_id', 'campaign_prizes', ['campaign_id'])

    op.create_table(
        'reward_entitlements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('prize_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(30), nullable=True),
        sa.Column('points_at_time', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('reward_kind', sa.String(20), nullable=True),
        sa.Column('cash_amount', sa.Integer(), server_default='0'),
        sa.Column('wallet_transaction_id', sa.Integer(), nullable=True),
        sa.Column('tracking_code', sa.String(100), nullable=True),
        sa.Column('rejection_reason', sa.String(300), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['prize_id'], ['campaign_prizes.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['wallet_transaction_id'], ['wallet_transactions.id']),
        sa.UniqueConstraint('creator_id', 'prize_id', name='uq_reward_entitlement'),
    )
    op.create_index('ix_reward_entitlements_creator_id', 'reward_entitlements', ['creator_id'])
    op.create_index('ix_reward_entitlements_company_id', 'reward_entitlements', ['company_id'])

    op.create_table(
        'campaign_metric_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.String(100), nullable=False),
        sa.Column('platform', sa.String(20), server_default='instagram'),
        sa.Column('last_views', sa.Integer(), server_default='0'),
        sa.Column('last_likes', sa.Integer(), server_default='0'),
        sa.Column('last_comments', sa.Integer(), server_default='0'),
        sa.Column('update_count', sa.Integer(), server_default='0'),
        sa.Column('sum_views_deltas', sa.Integer(), server_default='0'),
        sa.Column('sum_likes_deltas', sa.Integer(), server_default='0'),
        sa.Column('sum_comments_deltas', sa.Integer(), server_default='0'),
        sa.Column('flagged_for_review', sa.Boolean(), server_default='false'),
        sa.Column('flag_reason', sa.String(200), nullable=True),
        sa.Column('points_awarded', sa.Integer(), server_default='0'),
        sa.Column('points_today', sa.Integer(), server_default='0'),
        sa.Column('points_day', sa.Date(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.UniqueConstraint('campaign_id', 'creator_id', 'post_id', name='uq_metric_snapshot'),
    )

    # Messaging
    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='brand'),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), server_default='open'),
        sa.Column('last_message_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
    )
    op.create_index('ix_conversations_company_id', 'conversations', ['company_id'])
    op.create_index('ix_conversations_creator_id', 'conversations', ['creator_id'])

    op.create_table(
        'conv_messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_id', sa.Integer(), nullable=False),
        sa.Column('sender_user_id', sa.Integer(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.ForeignKeyConstraint(['sender_user_id'], ['users.id']),
    )
    op.create_index('ix_conv_messages_conversation_id', 'conv_messages', ['conversation_id'])
    op.create_index('ix_conv_messages_created_at', 'conv_messages', ['created_at'])

    op.create_table(
        'message_reads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('last_read_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('conversation_id', 'user_id', name='uq_message_read'),
    )

    op.create_table(
        'instagram_messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('conversation_id', sa.String(100), nullable=False),
        sa.Column('message_id', sa.String(150), nullable=False),
        sa.Column('sender_id', sa.String(50), nullable=True),
        sa.Column('sender_username', sa.String(100), nullable=True),
        sa.Column('recipient_id', sa.String(50), nullable=True),
        sa.Column('recipient_username', sa.String(100), nullable=True),
        sa.Column('message_text', sa.Text(), nullable=True),
        sa.Column('message_type', sa.String(20), server_default='text'),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('is_incoming', sa.Boolean(), server_default='true'),
        sa.Column('is_read', sa.Boolean(), server_default='false'),
        sa.Column('sent_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.UniqueConstraint('message_id'),
    )
    op.create_index('ix_instagram_messages_company_id', 'instagram_messages', ['company_id'])
    op.create_index('ix_instagram_messages_conversation_id', 'instagram_messages', ['conversation_id'])

    # Partnership Ads
    op.create_table(
        'creator_auth_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('label', sa.String(200), nullable=True),
        sa.Column('is_used', sa.Boolean(), server_default='false'),
        sa.Column('used_by_user_id', sa.Integer(), nullable=True),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['used_by_user_id'], ['users.id']),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_creator_auth_links_company_id', 'creator_auth_links', ['company_id'])

    op.create_table(
        'creator_ad_partners',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('instagram_username', sa.String(100), nullable=False),
        sa.Column('instagram_user_id', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('meta_partner_id', sa.String(100), nullable=True),
        sa.Column('auth_link_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('authorized_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.ForeignKeyConstraint(['auth_link_id'], ['creator_auth_links.id']),
        sa.UniqueConstraint('company_id', 'instagram_username', name='uq_ad_partner_handle'),
    )
    op.create_index('ix_creator_ad_partners_company_id', 'creator_ad_partners', ['company_id'])

    # Notifications and discovery
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(300), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default='false'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'creator_discovery_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('instagram_handle', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(200), nullable=True),
        sa.Column('followers', sa.Integer(), nullable=True),
        sa.Column('engagement_rate', sa.Float(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('profile_pic_url', sa.String(500), nullable=True),
        sa.Column('linked_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['linked_user_id'], ['users.id']),
        sa.UniqueConstraint('company_id', 'instagram_handle', name='uq_discovery_profile'),
    )
    op.create_index('ix_creator_discovery_profiles_company_id', 'creator_discovery_profiles', ['company_id'])


def downgrade():
    """Drop every table, dependents first."""
    for table in (
        'creator_discovery_profiles',
        'notifications',
        'creator_ad_partners',
        'creator_auth_links',
        'instagram_messages',
        'message_reads',
        'conv_messages',
        'conversations',
        'campaign_metric_snapshots',
        'reward_entitlements',
        'campaign_prizes',
        'campaign_points_rules',
        'points_ledger',
        'creator_commissions',
        'sales_tracking',
        'wallet_transactions',
        'creator_balances',
        'company_wallets',
        'community_invites',
        'brand_creator_memberships',
        'deliverables',
        'campaign_invites',
        'applications',
        'campaigns',
        'brand_tier_configs',
        'favorite_creators',
        'company_user_invites',
        'company_members',
        'companies',
        'users',
    ):
        op.drop_table(table)
