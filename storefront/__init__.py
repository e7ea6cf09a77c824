from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager, current_user
from flask_migrate import Migrate
import newrelic.agent
import os

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def create_app(config_overrides=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///storefront.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session token (JWT) settings
    app.config['JWT_SECRET'] = os.getenv('JWT_SECRET', 'dev-jwt-secret-change-in-production')
    app.config['JWT_ALGORITHM'] = os.getenv('JWT_ALGORITHM', 'HS256')
    app.config['SESSION_TOKEN_TTL_DAYS'] = int(os.getenv('SESSION_TOKEN_TTL_DAYS', '7'))
    app.config['SESSION_TOKEN_COOKIE'] = os.getenv('SESSION_TOKEN_COOKIE', 'session')
    app.config['SESSION_TOKEN_COOKIE_SECURE'] = os.getenv('SESSION_TOKEN_COOKIE_SECURE', 'false').lower() == 'true'

    # Flask's own signed session must not share the token cookie name
    app.config['SESSION_COOKIE_NAME'] = 'storefront_flask_session'

    # Listing defaults
    app.config['DEFAULT_PAGE_SIZE'] = int(os.getenv('DEFAULT_PAGE_SIZE', '10'))
    app.config['MAX_PAGE_SIZE'] = int(os.getenv('MAX_PAGE_SIZE', '100'))

    if config_overrides:
        app.config.update(config_overrides)

    # Setup logging
    from storefront.logging_config import setup_logging
    setup_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # Session token auth and the route access policy
    from storefront.services.security_service import init_security
    init_security(app)

    from storefront.errors import register_error_handlers
    register_error_handlers(app)

    # New Relic Custom Attributes for User Tracking
    @app.before_request
    def add_newrelic_user_attributes():
        """Tag the New Relic transaction with the authenticated user"""
        if current_user.is_authenticated:
            newrelic.agent.add_custom_attribute('enduser.id', str(current_user.id))
            newrelic.agent.add_custom_attribute('userId', str(current_user.id))
            newrelic.agent.add_custom_attribute('user', current_user.email)
            newrelic.agent.add_custom_attribute('role', current_user.role)

    # Register blueprints
    from storefront.routes import main, auth, categories, products, orders, cart, users
    app.register_blueprint(main.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(categories.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(orders.bp)
    app.register_blueprint(cart.bp)
    app.register_blueprint(users.bp)

    return app
