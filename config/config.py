"""
Portal settings
One class per deployment target; values come from the environment (.env is
loaded by the app factory) with development-friendly fallbacks.
"""

import os
from datetime import timedelta
from pathlib import Path


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ('true', 'on', '1')


class Config:
    """Settings shared by every environment"""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'portal-dev-secret'
    APP_NAME = 'Education Portal'
    APP_VERSION = '1.0.0'

    BASE_DIR = Path(__file__).resolve().parent.parent

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # Flask-Login cookie session
    PERMANENT_SESSION_LIFETIME = timedelta(hours=12)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_DURATION = timedelta(days=7)

    # Scheduling: one fixed zone, stored times are naive wall times in it
    TIMEZONE = os.environ.get('TIMEZONE', 'Asia/Ho_Chi_Minh')
    DEFAULT_RECURRENCE_MONTHS = int(os.environ.get('DEFAULT_RECURRENCE_MONTHS', 2))
    MAX_RECURRENCE_MONTHS = int(os.environ.get('MAX_RECURRENCE_MONTHS', 12))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s [in %(pathname)s:%(lineno)d]'
    LOG_FILE = Path(os.environ.get('LOG_FILE') or BASE_DIR / 'logs' / 'portal.log')

    # Requests slower than this many seconds are logged as warnings
    SLOW_REQUEST_THRESHOLD = float(os.environ.get('SLOW_REQUEST_THRESHOLD', 1.0))

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    @staticmethod
    def init_app(app):
        Path(app.config['LOG_FILE']).parent.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """Local sqlite database, verbose logs"""

    DEBUG = True
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        f'sqlite:///{Config.BASE_DIR}/portal.db'
    SQLALCHEMY_ECHO = _env_flag('SQLALCHEMY_ECHO')

    LOG_LEVEL = 'DEBUG'

    @staticmethod
    def init_app(app):
        Config.init_app(app)
        app.logger.info('Running in DEVELOPMENT mode, database: %s',
                        app.config.get('SQLALCHEMY_DATABASE_URI'))


class TestingConfig(Config):
    """In-memory database; no log files are written"""

    DEBUG = True
    TESTING = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    @staticmethod
    def init_app(app):
        pass


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{Config.BASE_DIR}/portal.db'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }

    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True

    # Unhandled errors go through the JSON 500 handler
    PROPAGATE_EXCEPTIONS = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Config class for a name, falling back to FLASK_CONFIG / FLASK_ENV"""
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG') or os.environ.get('FLASK_ENV', 'development')
    return config.get(config_name, DevelopmentConfig)
