"""
CLI Commands for CreatorConnect.

Provides Flask CLI commands for scheduled tasks and administration.

Usage:
    flask scheduled expire-invites                 # Expire stale community invites
    flask scheduled expire-partners                # Expire ad partners and auth links
    flask scheduled release-wallet --days 7        # Release settled creator funds

    flask community recalculate-tiers --company-id 1
    flask community stats --company-id 1

    flask realtime listen --token <jwt>            # Tail live notifications
"""
from .community import init_app as init_community_commands
from .scheduled import init_app as init_scheduled_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_community_commands(app)
    init_scheduled_commands(app)
