"""
Shared fixture for the storefront test suites: a fresh app on a temporary
SQLite file, plus helpers to create users, catalog rows and session tokens.

No application context stays pushed while the test client runs, so every
request gets its own context (and its own ``g`` and database session) as it
would in production. Fixture helpers therefore return ids.
"""
import os
import tempfile
import unittest
from decimal import Decimal

from storefront import create_app, db
from storefront.models import Category, Product, User
from storefront.services.auth_service import TokenConfig, TokenService


class StorefrontTestCase(unittest.TestCase):
    def setUp(self):
        """Build the app against an isolated database file"""
        self.db_fd, self.db_path = tempfile.mkstemp(suffix='.db')
        self.app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f'sqlite:///{self.db_path}',
            'JWT_SECRET': 'test-jwt-secret',
            'SECRET_KEY': 'test-secret-key',
        })
        with self.app.app_context():
            db.create_all()
        self.client = self.app.test_client()
        self.tokens = TokenService(TokenConfig.from_app(self.app))

    def tearDown(self):
        """Drop the schema and remove the database file"""
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        os.close(self.db_fd)
        os.unlink(self.db_path)

    # Fixtures

    def _add(self, instance):
        with self.app.app_context():
            db.session.add(instance)
            db.session.commit()
            return instance.id

    def create_user(self, email='customer@example.com', password='secret123', role='customer', name='Test User'):
        user = User(name=name, email=email, role=role)
        user.set_password(password)
        return self._add(user)

    def create_admin(self, email='admin@example.com', password='admin123'):
        return self.create_user(email=email, password=password, role='admin', name='Admin')

    def create_category(self, name='Electronics', slug=None):
        return self._add(Category(name=name, slug=slug or name.lower()))

    def create_product(self, name='Widget', price='10.00', stock=5, category_id=None, is_active=True,
                       description=None, slug=None):
        return self._add(Product(
            name=name,
            slug=slug or name.lower().replace(' ', '-'),
            description=description,
            price=Decimal(price),
            stock=stock,
            images=[],
            category_id=category_id,
            is_active=is_active,
        ))

    def token_for(self, user_id):
        with self.app.app_context():
            return self.tokens.issue_token(db.session.get(User, user_id))

    def auth_headers(self, user_id):
        return {'Authorization': f'Bearer {self.token_for(user_id)}'}

    def stock_of(self, product_id):
        with self.app.app_context():
            return db.session.get(Product, product_id).stock

    def count(self, model):
        with self.app.app_context():
            return db.session.query(model).count()
