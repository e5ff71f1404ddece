import os
from pathlib import Path


class Config:
    # Base directory
    BASE_DIR = Path(__file__).parent.parent

    # Database configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{BASE_DIR / "instance" / "medtrack.db"}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar days and wall-clock times are evaluated in this timezone
    MEDTRACK_TIMEZONE = os.environ.get('MEDTRACK_TIMEZONE', 'UTC')

    # Days of occurrences generated ahead when a schedule is created or changed
    OCCURRENCE_LOOKAHEAD_DAYS = int(os.environ.get('OCCURRENCE_LOOKAHEAD_DAYS', 60))

    # Remote sync configuration (unset URL = local only)
    REMOTE_SYNC_URL = os.environ.get('REMOTE_SYNC_URL')
    REMOTE_SYNC_TOKEN = os.environ.get('REMOTE_SYNC_TOKEN')
    REMOTE_SYNC_TIMEOUT = int(os.environ.get('REMOTE_SYNC_TIMEOUT', 10))  # seconds per request
    REMOTE_SYNC_RETRIES = int(os.environ.get('REMOTE_SYNC_RETRIES', 2))
    REMOTE_SYNC_RETRY_DELAY = float(os.environ.get('REMOTE_SYNC_RETRY_DELAY', 1.0))
    SYNC_WORKERS = int(os.environ.get('SYNC_WORKERS', 2))

    # Reminder delivery (unset URL = log only)
    REMINDER_WEBHOOK_URL = os.environ.get('REMINDER_WEBHOOK_URL')
    REMINDER_WEBHOOK_TIMEOUT = 5

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    MEDTRACK_TIMEZONE = 'UTC'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    REMOTE_SYNC_URL = None
    REMINDER_WEBHOOK_URL = None
    REMOTE_SYNC_RETRY_DELAY = 0
    # One worker runs background tasks in submission order
    SYNC_WORKERS = 1
