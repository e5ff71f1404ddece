"""
Flask CLI commands for the periodic MedTrack jobs
Run them from cron, e.g. `flask --app "medtrack:create_app()" medtrack age`
"""
import click
from flask import current_app
from flask.cli import AppGroup

from medtrack.utils.timezone import month_range

medtrack_cli = AppGroup('medtrack', help='Occurrence generation, aging and sync jobs.')


def get_service():
    return current_app.extensions['medtrack']


@medtrack_cli.command('generate')
@click.option('--days', type=int, default=None, help='Lookahead in days (defaults to OCCURRENCE_LOOKAHEAD_DAYS).')
def generate_command(days):
    """Generate upcoming occurrences for every active schedule."""
    created = get_service().generate_horizon(days)
    click.echo(f'✓ Generated {len(created)} occurrences')


@medtrack_cli.command('age')
def age_command():
    """Mark past Upcoming occurrences as Missed."""
    aged = get_service().sweep()
    click.echo(f'✓ Marked {len(aged)} occurrences as missed')


@medtrack_cli.command('sync')
def sync_command():
    """Pull schedules and this month's occurrences from the remote store."""
    service = get_service()
    if not service.sync.enabled:
        click.echo('ℹ️  REMOTE_SYNC_URL is not set, nothing to sync')
        return

    first, last = month_range(service.today())
    results = [
        service.sync.refresh_schedules().result(),
        service.sync.refresh_occurrences(first, last).result(),
    ]
    if all(results):
        click.echo('✓ Local data refreshed from remote')
    else:
        click.echo('⚠️  Remote refresh failed, local data kept (see log)')
