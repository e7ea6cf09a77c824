#!/usr/bin/env python3
"""
Cart and checkout tests
"""
import unittest
from decimal import Decimal

from storefront.models import CartItem, Order

from api_test_case import StorefrontTestCase


class TestCartApi(StorefrontTestCase):
    def setUp(self):
        super().setUp()
        self.customer = self.create_user()
        self.headers = self.auth_headers(self.customer)
        self.keyboard = self.create_product('Keyboard', price='100.00', stock=5)
        self.mouse = self.create_product('Mouse', price='50.00', stock=3)

    def add(self, product_id, quantity=1, headers=None):
        return self.client.post('/api/cart', json={'product_id': product_id, 'quantity': quantity},
                                headers=headers or self.headers)

    def test_cart_requires_session(self):
        self.assertEqual(self.client.get('/api/cart').status_code, 401)

    def test_adding_same_product_merges_quantity(self):
        self.assertEqual(self.add(self.keyboard, 1).status_code, 201)
        self.add(self.keyboard, 2)
        self.add(self.mouse)

        cart = self.client.get('/api/cart', headers=self.headers).get_json()['data']
        self.assertEqual(cart['item_count'], 2)
        quantities = {item['product_id']: item['quantity'] for item in cart['items']}
        self.assertEqual(quantities, {self.keyboard: 3, self.mouse: 1})
        self.assertEqual(Decimal(cart['total']), Decimal('350.00'))

    def test_add_rejects_bad_input(self):
        self.assertEqual(self.add(999).status_code, 404)
        self.assertEqual(self.add(self.keyboard, 0).status_code, 400)
        self.assertEqual(self.add('abc').status_code, 400)

        hidden = self.create_product('Prototype', is_active=False)
        self.assertEqual(self.add(hidden).status_code, 404)

    def test_remove_item(self):
        item_id = self.add(self.keyboard).get_json()['data']['id']

        response = self.client.delete(f'/api/cart/{item_id}', headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.count(CartItem), 0)
        self.assertEqual(self.client.delete(f'/api/cart/{item_id}', headers=self.headers).status_code, 404)

    def test_cannot_remove_another_users_item(self):
        item_id = self.add(self.keyboard).get_json()['data']['id']
        other = self.auth_headers(self.create_user(email='other@example.com'))

        response = self.client.delete(f'/api/cart/{item_id}', headers=other)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.count(CartItem), 1)

    def test_checkout_places_order_and_empties_cart(self):
        self.add(self.keyboard, 2)
        self.add(self.mouse, 1)

        response = self.client.post('/api/checkout', json={'shipping_address': '1 Main St'}, headers=self.headers)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Decimal(response.get_json()['data']['total']), Decimal('250.00'))
        self.assertEqual(self.count(Order), 1)
        self.assertEqual(self.count(CartItem), 0)
        self.assertEqual(self.stock_of(self.keyboard), 3)
        self.assertEqual(self.stock_of(self.mouse), 2)

    def test_checkout_with_empty_cart(self):
        response = self.client.post('/api/checkout', json={'shipping_address': '1 Main St'}, headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Cart is empty')

    def test_failed_checkout_keeps_cart(self):
        self.add(self.mouse, 3)
        self.add(self.keyboard, 1)
        # Someone else buys a mouse first
        self.client.post('/api/orders', json={
            'items': [{'product_id': self.mouse, 'quantity': 1}], 'shipping_address': '2 Side St'
        }, headers=self.auth_headers(self.create_user(email='other@example.com')))

        response = self.client.post('/api/checkout', json={'shipping_address': '1 Main St'}, headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.count(CartItem), 2)
        self.assertEqual(self.count(Order), 1)
        self.assertEqual(self.stock_of(self.keyboard), 5)


if __name__ == '__main__':
    unittest.main(verbosity=2)
