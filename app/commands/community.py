"""
CLI Commands for brand communities and realtime tooling.

Usage:
    flask community recalculate-tiers --company-id 1
    flask community stats --company-id 1
    flask realtime listen --url ws://localhost:5000/ws/notifications --token <jwt>
"""
import json
import time

import click
from flask.cli import with_appcontext

from ..models import Company
from ..services.community_service import CommunityService
from ..realtime.listener import NotificationListener, RECONNECT_DELAY_SECONDS


@click.group('community')
def community_cli():
    """Brand community commands."""
    pass


def _companies(company_id):
    if company_id:
        company = Company.query.get(company_id)
        if not company:
            raise click.ClickException(f"Company {company_id} not found")
        return [company]
    return Company.query.order_by(Company.id).all()


@community_cli.command('recalculate-tiers')
@click.option('--company-id', type=int, help='Specific company ID (or all if not specified)')
@with_appcontext
def recalculate_tiers(company_id):
    """Re-assign member tiers from their community points."""
    total = 0
    for company in _companies(company_id):
        changed = CommunityService(company.id).recalculate_tiers()
        click.echo(f"{company.name}: {changed} member(s) changed tier")
        total += changed
    click.echo(f"\nTOTAL: {total}")


@community_cli.command('stats')
@click.option('--company-id', type=int, required=True)
@with_appcontext
def community_stats(company_id):
    company = _companies(company_id)[0]
    click.echo(json.dumps(CommunityService(company.id).get_stats(), indent=2, default=str))


@click.group('realtime')
def realtime_cli():
    """Realtime notification commands."""
    pass


@realtime_cli.command('listen')
@click.option('--url', default='ws://localhost:5000/ws/notifications', show_default=True)
@click.option('--token', required=True, help='Access token of the listening user')
@click.option('--reconnect-delay', type=float, default=RECONNECT_DELAY_SECONDS, show_default=True)
def listen(url, token, reconnect_delay):
    """Print every notification envelope; reconnects until Ctrl+C."""
    listener = NotificationListener(url, token, reconnect_delay=reconnect_delay)
    listener.on('*', lambda envelope: click.echo(json.dumps(envelope, default=str)))
    listener.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo('Closing listener')
    finally:
        listener.close(timeout=5)


def init_app(app):
    app.cli.add_command(community_cli)
    app.cli.add_command(realtime_cli)
