#!/usr/bin/env python3
"""
Database initialization script
Creates the tables and sample categories/products for the storefront
"""

import sys
import os
from decimal import Decimal

# Add parent directory to path to import storefront
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app, db
from storefront.models import Category, Product, User
from storefront.services.catalog_service import slugify

SAMPLE_CATALOG = {
    'Electronics': [
        {
            'name': 'Laptop',
            'description': 'High-performance laptop, ideal for work.',
            'price': Decimal('898.00'),
            'stock': 10,
            'image_url': 'https://via.placeholder.com/300x300?text=Laptop'
        },
        {
            'name': 'Wireless Mouse',
            'description': 'Comfortable wireless mouse',
            'price': Decimal('29.80'),
            'stock': 50,
            'image_url': 'https://via.placeholder.com/300x300?text=Mouse'
        },
        {
            'name': 'Mechanical Keyboard',
            'description': 'Mechanical keyboard, great for gaming too',
            'price': Decimal('128.00'),
            'stock': 30,
            'image_url': 'https://via.placeholder.com/300x300?text=Keyboard'
        },
        {
            'name': 'USB-C Hub',
            'description': '7-in-1 USB-C hub with HDMI and USB 3.0',
            'price': Decimal('49.80'),
            'stock': 40,
            'image_url': 'https://via.placeholder.com/300x300?text=USB-C+Hub'
        },
    ],
    'Accessories': [
        {
            'name': 'Power Bank',
            'description': '20000mAh high-capacity power bank',
            'price': Decimal('39.80'),
            'stock': 60,
            'image_url': 'https://via.placeholder.com/300x300?text=Power+Bank'
        },
        {
            'name': 'Monitor Arm',
            'description': 'Dual monitor arm',
            'price': Decimal('89.80'),
            'stock': 20,
            'image_url': 'https://via.placeholder.com/300x300?text=Monitor+Arm'
        },
    ],
}


def init_db():
    app = create_app()

    with app.app_context():
        # Create all tables
        print("Creating database tables...")
        db.create_all()

        # Check if products already exist
        if Product.query.first():
            print("Database already initialized.")
            return

        print("Creating sample categories and products...")
        product_count = 0
        for category_name, products in SAMPLE_CATALOG.items():
            category = Category(name=category_name, slug=slugify(category_name))
            db.session.add(category)
            for product_data in products:
                db.session.add(Product(
                    slug=slugify(product_data['name']),
                    category=category,
                    images=[product_data['image_url']],
                    **product_data
                ))
                product_count += 1

        # Create a test customer
        print("Creating test user...")
        test_user = User(name='Test Customer', email='test@example.com', role='customer')
        test_user.set_password('password123')
        db.session.add(test_user)

        db.session.commit()
        print(f"Successfully created {len(SAMPLE_CATALOG)} categories, {product_count} products and 1 test user")
        print("\nTest user credentials:")
        print("Email: test@example.com")
        print("Password: password123")


if __name__ == '__main__':
    init_db()
