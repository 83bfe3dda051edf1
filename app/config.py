"""
Configuration management for the CreatorConnect platform.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-jwt-secret-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token lifetimes (seconds)
    JWT_ACCESS_EXPIRY_SECONDS = int(os.getenv('JWT_ACCESS_EXPIRY_SECONDS', 3600))
    JWT_REFRESH_EXPIRY_SECONDS = int(os.getenv('JWT_REFRESH_EXPIRY_SECONDS', 30 * 24 * 3600))

    # Frontend origins allowed by CORS
    CORS_ORIGINS = [
        o.strip() for o in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000'
        ).split(',') if o.strip()
    ]

    # Meta Graph API (Instagram DMs, Partnership Ads)
    META_GRAPH_API_VERSION = os.getenv('META_GRAPH_API_VERSION', 'v21.0')
    META_ACCESS_TOKEN = os.getenv('META_ACCESS_TOKEN', '')
    META_AD_ACCOUNT_ID = os.getenv('META_AD_ACCOUNT_ID', '')
    META_APP_SECRET = os.getenv('META_APP_SECRET', '')
    INSTAGRAM_WEBHOOK_VERIFY_TOKEN = os.getenv('INSTAGRAM_WEBHOOK_VERIFY_TOKEN', '')
    # Instagram business account used for business_discovery lookups
    META_DISCOVERY_BUSINESS_ID = os.getenv('META_DISCOVERY_BUSINESS_ID', '')
    CREATOR_ANALYSIS_CACHE_SECONDS = int(os.getenv('CREATOR_ANALYSIS_CACHE_SECONDS', 6 * 3600))

    # Brazilian public data providers
    BRASILAPI_URL = os.getenv('BRASILAPI_URL', 'https://brasilapi.com.br/api')
    RECEITAWS_URL = os.getenv('RECEITAWS_URL', 'https://receitaws.com.br/v1')
    VIACEP_URL = os.getenv('VIACEP_URL', 'https://viacep.com.br/ws')
    IBGE_URL = os.getenv('IBGE_URL', 'https://servicodados.ibge.gov.br/api/v1')

    # Flask-Limiter
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '300 per minute')
    RATELIMIT_HEADERS_ENABLED = True
    AUTH_RATE_LIMIT = os.getenv('AUTH_RATE_LIMIT', '20 per minute')
    CNPJ_RATE_LIMIT = os.getenv('CNPJ_RATE_LIMIT', '3 per minute')
    CNPJ_REFRESH_DAYS = 30

    # WebSocket heartbeat (seconds)
    WS_HEARTBEAT_INTERVAL = 30

    # Creator auth links for Partnership Ads
    CREATOR_AUTH_LINK_TTL_DAYS = 7
    COMMUNITY_INVITE_TTL_DAYS = 14

    APP_URL = os.getenv('APP_URL', 'http://localhost:5000')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///creatorconnect_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    # Must be set via environment
    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Production deployments MUST have a secure SECRET_KEY.\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!\n"
                    "Production deployments require a unique, random SECRET_KEY."
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'testing-jwt-secret'
    CACHE_TYPE = 'SimpleCache'
    WS_HEARTBEAT_INTERVAL = 1
    META_APP_SECRET = 'testing-meta-secret'
    INSTAGRAM_WEBHOOK_VERIFY_TOKEN = 'testing-verify-token'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
