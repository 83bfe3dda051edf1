"""
CLI Commands for Scheduled Tasks.

The background scheduler runs these automatically in production; they can
also be run manually or via cron jobs:

# Community invite expiration (hourly)
15 * * * * cd /app && flask scheduled expire-invites

# Partnership Ads expiration (daily at 2 AM)
0 2 * * * cd /app && flask scheduled expire-partners

# Wallet release (daily at 3 AM)
0 3 * * * cd /app && flask scheduled release-wallet --days=7
"""

import click
from flask.cli import with_appcontext

from ..services.community_service import CommunityService
from ..services.meta_ads_service import expire_partners_and_links
from ..services.wallet_service import wallet_service, PENDING_RELEASE_DAYS


@click.group('scheduled')
def scheduled_cli():
    """Scheduled task commands."""
    pass


@scheduled_cli.command('expire-invites')
@with_appcontext
def expire_invites():
    """Mark community invites past their expiry as expired."""
    expired = CommunityService.expire_invites()
    click.echo(f"Expired {expired} community invite(s)")


@scheduled_cli.command('expire-partners')
@with_appcontext
def expire_partners():
    """Expire ad partners past expires_at and delete unused expired auth links."""
    result = expire_partners_and_links()
    click.echo(f"Partners expired: {result['partners_expired']}")
    click.echo(f"Auth links removed: {result['links_expired']}")


@scheduled_cli.command('release-wallet')
@click.option('--days', type=int, default=PENDING_RELEASE_DAYS, help='Settlement window in days')
@with_appcontext
def release_wallet(days):
    """
    Release pending creator funds older than the settlement window.

    Amounts move from pending_balance to available_balance.
    """
    result = wallet_service.release_pending(older_than_days=days)
    click.echo(f"Released {result['released']} transaction(s), {result['amount']} cents")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(scheduled_cli)
