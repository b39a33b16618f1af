# config.py - Configuration Flask

import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

# Base directory (chemin absolu du projet) pour créer des chemins par défaut
BASEDIR = os.path.abspath(os.path.dirname(__file__))


def _abs_path(value):
    if not os.path.isabs(value):
        return os.path.join(BASEDIR, value)
    return value


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Configuration de base"""
    SECRET_KEY = os.getenv('SESSION_SECRET') or os.getenv('SECRET_KEY', 'fallback-secret-change-in-production')
    # Par défaut la DB est créée dans le dossier du projet (database.db)
    DEFAULT_SQLITE_PATH = os.path.join(BASEDIR, 'database.db')
    _db_url = os.getenv('DATABASE_URL', f'sqlite:///{DEFAULT_SQLITE_PATH}')
    # Render/Heroku fournissent souvent postgres://, SQLAlchemy préfère postgresql://
    if _db_url.startswith('postgres://'):
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)
    SQLALCHEMY_DATABASE_URI = _db_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    STATIC_FOLDER = _abs_path(os.getenv('STATIC_FOLDER', 'frontend/static'))
    STATIC_URL_PATH = os.getenv('STATIC_URL_PATH', '/static')
    # index.html (vitrine) et admin.html (panneau admin)
    PAGES_FOLDER = _abs_path(os.getenv('PAGES_FOLDER', 'frontend'))
    UPLOAD_FOLDER = _abs_path(os.getenv('UPLOAD_FOLDER', 'frontend/static/uploads'))
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB max par requête

    # Session admin (cookie signé)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    REMEMBER_COOKIE_DURATION = timedelta(hours=24)
    REMEMBER_COOKIE_HTTPONLY = True
    TRUST_PROXY = False

    # Limitation de débit (express-rate-limit compatible: fenêtres en millisecondes)
    RATE_LIMIT_ENABLED = False
    RATE_LIMIT_WINDOW_MS = _env_int('RATE_LIMIT_WINDOW_MS', 15 * 60 * 1000)
    RATE_LIMIT_MAX_REQUESTS = _env_int('RATE_LIMIT_MAX_REQUESTS', 100)
    RATE_LIMIT_STRICT_WINDOW_MS = 15 * 60 * 1000
    RATE_LIMIT_STRICT_MAX_REQUESTS = 10
    RATE_LIMIT_STRICT_PATHS = ('/api/admin/login',)

    CORS_ALLOWED_ORIGINS = os.getenv('CORS_ALLOWED_ORIGINS', '*')

    # Le seeder de catégories peut ajouter la colonne icon si elle manque.
    # Mettre à False pour exiger une migration préalable (flask db upgrade).
    CATEGORY_SEED_ALTER_SCHEMA = os.getenv('CATEGORY_SEED_ALTER_SCHEMA', 'True').lower() == 'true'

    # Logs
    LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'True').lower() == 'true'
    LOG_DIR = _abs_path(os.getenv('LOG_DIR', 'logs'))
    EXPOSE_ERRORS = False

    # Configuration Boutique
    SHOP_NAME = os.getenv('SHOP_NAME', 'Tabrima Store')
    SHOP_NICHE = os.getenv('SHOP_NICHE', 'Female Body Care')
    PORT = _env_int('PORT', 3000)


class DevelopmentConfig(Config):
    """Configuration développement"""
    ENV_NAME = 'development'
    DEBUG = True
    TESTING = False
    EXPOSE_ERRORS = True


class ProductionConfig(Config):
    """Configuration production"""
    ENV_NAME = 'production'
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    TRUST_PROXY = True
    RATE_LIMIT_ENABLED = True


class TestingConfig(Config):
    """Configuration tests (pytest)"""
    ENV_NAME = 'testing'
    DEBUG = False
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    LOG_TO_FILE = False
    RATE_LIMIT_ENABLED = False


# Configuration par défaut
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
