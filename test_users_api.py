#!/usr/bin/env python3
"""
Admin user management tests
"""
import unittest

from storefront import db
from storefront.models import CartItem, Order, User
from storefront.services.order_service import OrderLine, OrderService

from api_test_case import StorefrontTestCase


class TestUsersApi(StorefrontTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.auth_headers(self.create_admin())
        self.customer_id = self.create_user()

    def test_admin_lists_users_without_passwords(self):
        for n in range(3):
            self.create_user(email=f'user{n}@example.com')

        body = self.client.get('/api/users?page=2&limit=2', headers=self.admin).get_json()

        self.assertEqual(body['pagination'], {'page': 2, 'limit': 2, 'total': 5, 'totalPages': 3})
        self.assertEqual(len(body['data']), 2)
        self.assertTrue(all('password' not in user for user in body['data']))

    def test_limit_is_capped(self):
        body = self.client.get('/api/users?limit=1000', headers=self.admin).get_json()
        self.assertEqual(body['pagination']['limit'], 100)

    def test_customer_cannot_manage_users(self):
        headers = self.auth_headers(self.customer_id)
        self.assertEqual(self.client.get('/api/users', headers=headers).status_code, 403)
        self.assertEqual(
            self.client.put(f'/api/users/{self.customer_id}', json={'role': 'admin'}, headers=headers).status_code,
            403
        )

    def test_promote_to_admin(self):
        response = self.client.put(f'/api/users/{self.customer_id}', json={'role': 'admin'}, headers=self.admin)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['role'], 'admin')

        # New tokens carry the new role
        promoted = self.auth_headers(self.customer_id)
        self.assertEqual(self.client.get('/api/users', headers=promoted).status_code, 200)

    def test_update_validation(self):
        url = f'/api/users/{self.customer_id}'
        self.assertEqual(self.client.put(url, json={'role': 'superuser'}, headers=self.admin).status_code, 400)
        self.assertEqual(self.client.put(url, json={}, headers=self.admin).status_code, 400)
        self.assertEqual(
            self.client.put(url, json={'email': 'admin@example.com'}, headers=self.admin).status_code, 409
        )
        self.assertEqual(self.client.put('/api/users/999', json={'name': 'X'}, headers=self.admin).status_code, 404)

    def test_rename_and_change_email(self):
        response = self.client.put(f'/api/users/{self.customer_id}',
                                   json={'name': 'Renamed', 'email': 'New@Example.com'}, headers=self.admin)

        data = response.get_json()['data']
        self.assertEqual(data['name'], 'Renamed')
        self.assertEqual(data['email'], 'new@example.com')

    def test_delete_user_removes_orders_and_cart(self):
        product_id = self.create_product(stock=5)
        with self.app.app_context():
            OrderService(db.session).place_order(self.customer_id, [OrderLine(product_id, 1)], '1 Main St')
            db.session.add(CartItem(user_id=self.customer_id, product_id=product_id, quantity=1))
            db.session.commit()

        response = self.client.delete(f'/api/users/{self.customer_id}', headers=self.admin)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.count(User), 1)
        self.assertEqual(self.count(Order), 0)
        self.assertEqual(self.count(CartItem), 0)

    def test_delete_missing_user(self):
        self.assertEqual(self.client.delete('/api/users/999', headers=self.admin).status_code, 404)


if __name__ == '__main__':
    unittest.main(verbosity=2)
