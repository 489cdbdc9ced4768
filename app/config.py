import os


class BaseConfig:
    """Base configuration shared across all environments."""

    # Flask core
    SECRET_KEY = os.environ.get('SECRET_KEY', 'fallback-secret-key-change-me')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'SQLALCHEMY_DATABASE_URI', 'sqlite:///dev.db'
    )

    # Codeforces API
    CF_API_BASE_URL = os.environ.get('CF_API_BASE_URL', 'https://codeforces.com/api')
    CF_API_KEY = os.environ.get('CF_API_KEY', '')
    CF_API_SECRET = os.environ.get('CF_API_SECRET', '')
    CF_API_CALL_DELAY = float(os.environ.get('CF_API_CALL_DELAY', '1.2'))
    CF_REQUEST_TIMEOUT = float(os.environ.get('CF_REQUEST_TIMEOUT', '30'))
    CF_MAX_RETRIES = int(os.environ.get('CF_MAX_RETRIES', '3'))
    CF_RETRY_BACKOFF = float(os.environ.get('CF_RETRY_BACKOFF', '1.0'))
    CF_SUBMISSION_FETCH_LIMIT = int(
        os.environ.get('CF_SUBMISSION_FETCH_LIMIT', '2000')
    )

    # Sync engine
    SYNC_ERROR_MAX_LENGTH = 500
    SYNC_STALE_AFTER_HOURS = float(os.environ.get('SYNC_STALE_AFTER_HOURS', '2'))

    # Inactivity reminders
    INACTIVITY_DAYS = int(os.environ.get('INACTIVITY_DAYS', '7'))

    # Scheduler
    SCHEDULER_ENABLED = os.environ.get(
        'SCHEDULER_ENABLED', 'false'
    ).lower() in ('true', '1', 'yes')
    DEFAULT_CRON_SCHEDULE = os.environ.get('DEFAULT_CRON_SCHEDULE', '0 2 * * *')
    DEFAULT_CRON_TIMEZONE = os.environ.get('DEFAULT_CRON_TIMEZONE', 'Etc/UTC')

    # Mail
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '25'))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'false').lower() in ('true', '1', 'yes')
    MAIL_USE_SSL = os.environ.get('MAIL_USE_SSL', 'false').lower() in ('true', '1', 'yes')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER')

    # Logging
    LOG_FILE_MAX_BYTES = int(os.environ.get('LOG_FILE_MAX_BYTES', '0'))
    LOG_FILE_BACKUP_COUNT = int(os.environ.get('LOG_FILE_BACKUP_COUNT', '3'))
    LOG_FORMAT = os.environ.get(
        'LOG_FORMAT', '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )


class DevelopmentConfig(BaseConfig):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'SQLALCHEMY_DATABASE_URI', 'sqlite:///dev.db'
    )
    SCHEDULER_ENABLED = False


class ProductionConfig(BaseConfig):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'SQLALCHEMY_DATABASE_URI', 'sqlite:///prod.db'
    )
    SCHEDULER_ENABLED = os.environ.get(
        'SCHEDULER_ENABLED', 'true'
    ).lower() in ('true', '1', 'yes')
    LOG_FILE_MAX_BYTES = int(os.environ.get('LOG_FILE_MAX_BYTES', str(10 * 1024 * 1024)))


class TestingConfig(BaseConfig):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret-key'
    SCHEDULER_ENABLED = False
    SERVER_NAME = 'localhost'
    CF_API_KEY = ''
    CF_API_SECRET = ''
    CF_API_CALL_DELAY = 0.0
    CF_RETRY_BACKOFF = 0.0
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = 'tracker@test.local'
    LOG_FILE_MAX_BYTES = 0


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}
