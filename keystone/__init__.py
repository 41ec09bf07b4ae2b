import logging
import os

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix

from keystone.config import config_by_name
from keystone.errors import DomainError

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    app = Flask(__name__)

    # Trust reverse proxy headers (e.g. from Render)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # Configuration
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    app.config.from_object(config_by_name.get(config_name, config_by_name['development']))

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # CORS configuration
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config['FRONTEND_URL'].split(','),
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    # Security headers (only in production)
    if config_name == 'production':
        Talisman(
            app,
            force_https=True,
            content_security_policy=None
        )

    # Register blueprints
    from keystone.api.auth import auth_bp
    from keystone.api.properties import properties_bp
    from keystone.api.units import units_bp
    from keystone.api.applications import applications_bp
    from keystone.api.homeowners import homeowners_bp
    from keystone.api.tenant_invitations import tenant_invitations_bp
    from keystone.api.leases import leases_bp
    from keystone.api.maintenance import maintenance_bp
    from keystone.api.announcements import announcements_bp
    from keystone.api.activity import activity_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(properties_bp, url_prefix='/api/properties')
    app.register_blueprint(units_bp, url_prefix='/api/units')
    app.register_blueprint(applications_bp, url_prefix='/api/applications')
    app.register_blueprint(homeowners_bp, url_prefix='/api/homeowners')
    app.register_blueprint(tenant_invitations_bp, url_prefix='/api/tenant-invitations')
    app.register_blueprint(leases_bp, url_prefix='/api/leases')
    app.register_blueprint(maintenance_bp, url_prefix='/api/maintenance')
    app.register_blueprint(announcements_bp, url_prefix='/api/announcements')
    app.register_blueprint(activity_bp, url_prefix='/api/activity')

    # Error handlers
    @app.errorhandler(DomainError)
    def domain_error_handler(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return {'message': 'Rate limit exceeded. Please try again later.'}, 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return {'message': 'Internal server error'}, 500

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'keystone-api'}, 200

    from keystone.services.sweeper import ExpirySweeper, register_cli

    register_cli(app)

    # Create tables
    with app.app_context():
        from keystone import models  # noqa: F401
        db.create_all()

    if app.config['SWEEPER_ENABLED']:
        sweeper = ExpirySweeper(app)
        app.extensions['expiry_sweeper'] = sweeper
        sweeper.start()

    return app
