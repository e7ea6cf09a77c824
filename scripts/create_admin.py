#!/usr/bin/env python3
"""
Admin user creation script
Creates (or promotes) the back-office admin account
"""

import sys
import os

# Add parent directory to path to import storefront
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app, db
from storefront.models import User
from storefront.models.user import ROLE_ADMIN

ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@example.com')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'admin123')


def create_admin():
    app = create_app()

    with app.app_context():
        # Check if admin user already exists
        admin_user = User.query.filter_by(email=ADMIN_EMAIL).first()

        if admin_user:
            if admin_user.role != ROLE_ADMIN:
                admin_user.role = ROLE_ADMIN
                db.session.commit()
                print(f"Existing user {admin_user.email} promoted to admin")
            else:
                print("Admin user already exists:")
                print(f"Email: {admin_user.email}")
                print(f"Name: {admin_user.name}")
            return

        # Create admin user
        print("Creating admin user...")
        admin_user = User(name='Administrator', email=ADMIN_EMAIL, role=ROLE_ADMIN)
        admin_user.set_password(ADMIN_PASSWORD)

        db.session.add(admin_user)
        db.session.commit()

        print("Admin user created successfully!")
        print("\nAdmin user credentials:")
        print(f"Email: {ADMIN_EMAIL}")
        print(f"Password: {ADMIN_PASSWORD}")


if __name__ == '__main__':
    create_admin()
