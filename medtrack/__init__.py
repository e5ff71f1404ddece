import logging

from flask import Flask
from flask_migrate import Migrate

from medtrack.config import Config
from medtrack.models import db
from medtrack.utils import timezone

migrate = Migrate()


def build_service(app, store=None, remote=None, notifier=None):
    """Wire an AdherenceService from the app's configuration"""
    from medtrack.services.adherence import AdherenceService
    from medtrack.services.reminders import LoggingNotifier, WebhookNotifier
    from medtrack.services.sync import SyncService
    from medtrack.storage import LocalStore, RemoteStore

    store = store or LocalStore()
    if remote is None and app.config.get('REMOTE_SYNC_URL'):
        remote = RemoteStore(
            app.config['REMOTE_SYNC_URL'],
            token=app.config.get('REMOTE_SYNC_TOKEN'),
            timeout=app.config['REMOTE_SYNC_TIMEOUT']
        )
    if notifier is None:
        if app.config.get('REMINDER_WEBHOOK_URL'):
            notifier = WebhookNotifier(app.config['REMINDER_WEBHOOK_URL'], app.config['REMINDER_WEBHOOK_TIMEOUT'])
        else:
            notifier = LoggingNotifier()

    sync = SyncService(
        store,
        remote,
        app=app,
        retries=app.config['REMOTE_SYNC_RETRIES'],
        retry_delay=app.config['REMOTE_SYNC_RETRY_DELAY'],
        workers=app.config['SYNC_WORKERS']
    )
    return AdherenceService(
        store,
        sync=sync,
        notifier=notifier,
        lookahead_days=app.config['OCCURRENCE_LOOKAHEAD_DAYS']
    )


def create_app(config_class=Config, remote=None, notifier=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    timezone.configure(app.config['MEDTRACK_TIMEZONE'])

    # Initialize database
    db.init_app(app)

    # Initialize Flask-Migrate
    migrate.init_app(app, db)

    # Register blueprints
    from medtrack.api.routes import api_bp
    app.register_blueprint(api_bp)

    from medtrack.cli import medtrack_cli
    app.cli.add_command(medtrack_cli)

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from medtrack.models.schedule import Schedule
        from medtrack.models.occurrence import Occurrence
        db.create_all()

    app.extensions['medtrack'] = build_service(app, remote=remote, notifier=notifier)
    return app
