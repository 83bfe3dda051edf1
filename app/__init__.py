"""
CreatorConnect Influencer Marketplace
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate, sock
from .config import get_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # WebSocket routes must be declared on `sock` before init_app registers them
    from .realtime import routes as _realtime_routes  # noqa: F401
    sock.init_app(app)

    # Initialize caching (Redis when REDIS_URL is set, in-process otherwise)
    from .utils.cache import init_cache
    init_cache(app)

    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-Company-ID', 'X-Request-ID'],
    )

    # Rate limiter (RATELIMIT_ENABLED toggles it)
    from .middleware import init_rate_limiter
    init_rate_limiter(app)

    # Initialize request ID tracking for request tracing
    from .middleware import init_request_id_tracking
    init_request_id_tracking(app)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Background scheduler for expirations and wallet releases
    from .utils.scheduler import init_scheduler
    init_scheduler(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'creatorconnect'}

    @app.route('/')
    def index():
        return {'service': 'CreatorConnect', 'status': 'running', 'version': '1.0.0'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    # Auth and profile
    from .api.auth import auth_bp
    from .api.users import users_bp

    # Companies and campaigns
    from .api.companies import companies_bp
    from .api.campaigns import campaigns_bp
    from .api.applications import applications_bp
    from .api.invites import invites_bp
    from .api.creators import creators_bp

    # Brand communities and gamification
    from .api.community import community_bp
    from .api.gamification import gamification_bp

    # Money
    from .api.wallet import wallet_bp

    # Messaging and notifications
    from .api.messages import messages_bp
    from .api.notifications import notifications_bp
    from .api.instagram import instagram_bp

    # Brazilian public data
    from .api.enrichment import enrichment_bp

    # Meta Partnership Ads
    from .api.meta_marketing import meta_marketing_bp

    # Webhooks
    from .webhooks.instagram import instagram_webhook_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api')

    app.register_blueprint(companies_bp, url_prefix='/api')
    app.register_blueprint(campaigns_bp, url_prefix='/api')
    app.register_blueprint(applications_bp, url_prefix='/api/applications')
    app.register_blueprint(invites_bp, url_prefix='/api/invites')
    app.register_blueprint(creators_bp, url_prefix='/api')

    app.register_blueprint(community_bp, url_prefix='/api')
    app.register_blueprint(gamification_bp, url_prefix='/api/gamification')

    app.register_blueprint(wallet_bp, url_prefix='/api')

    app.register_blueprint(messages_bp, url_prefix='/api/messages')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(instagram_bp, url_prefix='/api/instagram')

    app.register_blueprint(enrichment_bp, url_prefix='/api/enrichment')
    app.register_blueprint(meta_marketing_bp, url_prefix='/api/meta-marketing')

    app.register_blueprint(instagram_webhook_bp, url_prefix='/webhook')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils import errors
    from .utils.exceptions import CreatorConnectError

    @app.errorhandler(CreatorConnectError)
    def handle_domain_error(error):
        return errors.error_response(error.message, error.code, error.status_code)

    @app.errorhandler(400)
    def bad_request(error):
        return errors.bad_request('Bad request')

    @app.errorhandler(404)
    def not_found(error):
        return errors.not_found('Not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return errors.error_response('Method not allowed', errors.ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(429)
    def rate_limited(error):
        return errors.too_many_requests()

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return errors.internal_error()
