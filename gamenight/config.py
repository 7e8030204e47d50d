import os

basedir = os.path.abspath(os.path.dirname(__file__))

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-prod'


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', DEFAULT_SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    MAX_GAMES_PER_USER = _env_int('MAX_GAMES_PER_USER', 20)
    MAX_PLAYERS_PER_GAME = _env_int('MAX_PLAYERS_PER_GAME', 50)
    CALENDAR_CACHE_SECONDS = _env_int('CALENDAR_CACHE_SECONDS', 300)
    CALENDAR_PRODID = os.environ.get('CALENDAR_PRODID', '-//Game Night//Session Calendar//EN')
    CALENDAR_UID_DOMAIN = os.environ.get('CALENDAR_UID_DOMAIN', 'gamenight.local')
    AUTO_CREATE_TABLES = _env_bool('AUTO_CREATE_TABLES', True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'gamenight_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    MAX_GAMES_PER_USER = 20
    MAX_PLAYERS_PER_GAME = 50


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
