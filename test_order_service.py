#!/usr/bin/env python3
"""
Order transaction tests: totals, stock guards, rollback and concurrency
"""
import threading
import unittest
from decimal import Decimal

from sqlalchemy.dialects import postgresql

from storefront import db
from storefront.errors import (
    EmptyCart, InsufficientStock, NoFieldsSupplied, OrderNotFound, ProductNotFound, ValidationError,
)
from storefront.models import Order, OrderItem, Product
from storefront.services.order_service import OrderLine, OrderService, lock_products, parse_order_lines

from api_test_case import StorefrontTestCase


class TestParseOrderLines(unittest.TestCase):
    def test_valid_payload(self):
        lines = parse_order_lines([{'product_id': 1, 'quantity': 2}, {'product_id': 3, 'quantity': 1}])
        self.assertEqual(lines, [OrderLine(1, 2), OrderLine(3, 1)])

    def test_empty_payload_is_rejected(self):
        for items in (None, []):
            with self.subTest(items=items):
                with self.assertRaises(EmptyCart):
                    parse_order_lines(items)

    def test_invalid_lines_are_rejected(self):
        for items in ('abc', [{'product_id': 1}], [{'product_id': 1, 'quantity': 0}],
                      [{'product_id': 1, 'quantity': -2}], [{'product_id': '1', 'quantity': 1}],
                      [{'product_id': 1, 'quantity': True}], [5]):
            with self.subTest(items=items):
                with self.assertRaises(ValidationError):
                    parse_order_lines(items)


class TestLockProducts(unittest.TestCase):
    def compile(self, product_ids):
        return str(lock_products(product_ids).compile(
            dialect=postgresql.dialect(), compile_kwargs={'literal_binds': True}
        ))

    def test_rows_are_locked_in_primary_key_order(self):
        sql = self.compile([7, 3, 7, 5])

        self.assertIn('ORDER BY products.id', sql)
        self.assertTrue(sql.rstrip().endswith('FOR UPDATE'))
        self.assertIn('IN (3, 5, 7)', sql)

    def test_line_order_does_not_change_the_statement(self):
        self.assertEqual(self.compile([1, 2]), self.compile([2, 1]))


class TestPlaceOrder(StorefrontTestCase):
    def setUp(self):
        super().setUp()
        self.customer_id = self.create_user()
        self.keyboard = self.create_product('Keyboard', price='100.00', stock=5)
        self.mouse = self.create_product('Mouse', price='50.00', stock=3)

    def place(self, lines, shipping_address='1 Main St', **kwargs):
        with self.app.app_context():
            return OrderService(db.session).place_order(self.customer_id, lines, shipping_address, **kwargs)

    def test_order_total_items_and_stock(self):
        placed = self.place([OrderLine(self.keyboard, 2), OrderLine(self.mouse, 1)], notes='Leave at door')

        self.assertEqual(placed.total, Decimal('250.00'))
        self.assertEqual(self.stock_of(self.keyboard), 3)
        self.assertEqual(self.stock_of(self.mouse), 2)

        with self.app.app_context():
            order = db.session.get(Order, placed.order_id)
            self.assertEqual(order.user_id, self.customer_id)
            self.assertEqual(order.total, Decimal('250.00'))
            self.assertEqual(order.status, 'pending')
            self.assertEqual(order.payment_status, 'unpaid')
            self.assertEqual(order.notes, 'Leave at door')
            self.assertEqual([(i.product_id, i.quantity, i.price) for i in order.items], [
                (self.keyboard, 2, Decimal('100.00')),
                (self.mouse, 1, Decimal('50.00')),
            ])

    def test_insufficient_stock_leaves_no_partial_writes(self):
        with self.assertRaises(InsufficientStock) as raised:
            self.place([OrderLine(self.keyboard, 1), OrderLine(self.mouse, 4)])

        self.assertEqual(raised.exception.product_id, self.mouse)
        self.assertEqual(self.count(Order), 0)
        self.assertEqual(self.count(OrderItem), 0)
        self.assertEqual(self.stock_of(self.keyboard), 5)
        self.assertEqual(self.stock_of(self.mouse), 3)

    def test_repeated_product_lines_are_checked_together(self):
        with self.assertRaises(InsufficientStock):
            self.place([OrderLine(self.mouse, 2), OrderLine(self.mouse, 2)])
        self.assertEqual(self.stock_of(self.mouse), 3)

        placed = self.place([OrderLine(self.mouse, 2), OrderLine(self.mouse, 1)])
        self.assertEqual(placed.total, Decimal('150.00'))
        self.assertEqual(self.stock_of(self.mouse), 0)

    def test_unknown_product(self):
        with self.assertRaises(ProductNotFound) as raised:
            self.place([OrderLine(self.keyboard, 1), OrderLine(999, 1)])

        self.assertEqual(raised.exception.product_id, 999)
        self.assertEqual(self.count(Order), 0)
        self.assertEqual(self.stock_of(self.keyboard), 5)

    def test_first_missing_product_in_request_order_is_reported(self):
        with self.assertRaises(ProductNotFound) as raised:
            self.place([OrderLine(self.keyboard, 1), OrderLine(999, 1), OrderLine(998, 1)])
        self.assertEqual(raised.exception.product_id, 999)

    def test_empty_order(self):
        with self.assertRaises(EmptyCart):
            self.place([])

    def test_shipping_address_is_required(self):
        with self.assertRaises(ValidationError):
            self.place([OrderLine(self.keyboard, 1)], shipping_address='  ')
        self.assertEqual(self.stock_of(self.keyboard), 5)

    def test_failing_after_insert_hook_rolls_back(self):
        def explode(session):
            raise RuntimeError('hook failed')

        with self.assertRaises(RuntimeError):
            self.place([OrderLine(self.keyboard, 1)], after_insert=explode)

        self.assertEqual(self.count(Order), 0)
        self.assertEqual(self.stock_of(self.keyboard), 5)

    def test_item_price_is_a_snapshot(self):
        placed = self.place([OrderLine(self.keyboard, 1)])

        with self.app.app_context():
            db.session.get(Product, self.keyboard).price = Decimal('80.00')
            db.session.commit()

        with self.app.app_context():
            order = db.session.get(Order, placed.order_id)
            self.assertEqual(order.items[0].price, Decimal('100.00'))
            self.assertEqual(order.total, Decimal('100.00'))

    def test_concurrent_orders_for_last_unit(self):
        last_unit = self.create_product('Limited Edition', price='30.00', stock=1)
        other_customer = self.create_user(email='other@example.com')
        outcomes = []
        start = threading.Barrier(2)

        def buy(user_id):
            start.wait()
            with self.app.app_context():
                try:
                    OrderService(db.session).place_order(user_id, [OrderLine(last_unit, 1)], '1 Main St')
                    outcomes.append('placed')
                except InsufficientStock:
                    outcomes.append('insufficient')

        threads = [threading.Thread(target=buy, args=(user_id,))
                   for user_id in (self.customer_id, other_customer)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        self.assertEqual(sorted(outcomes), ['insufficient', 'placed'])
        self.assertEqual(self.stock_of(last_unit), 0)
        self.assertEqual(self.count(Order), 1)


class TestUpdateStatus(StorefrontTestCase):
    def setUp(self):
        super().setUp()
        customer_id = self.create_user()
        product_id = self.create_product(stock=2)
        with self.app.app_context():
            self.order_id = OrderService(db.session).place_order(
                customer_id, [OrderLine(product_id, 1)], '1 Main St'
            ).order_id

    def update(self, **kwargs):
        with self.app.app_context():
            order = OrderService(db.session).update_status(self.order_id, **kwargs)
            return order.status, order.payment_status

    def test_partial_updates(self):
        self.assertEqual(self.update(payment_status='paid'), ('pending', 'paid'))
        self.assertEqual(self.update(status='shipped'), ('shipped', 'paid'))
        self.assertEqual(self.update(status='delivered', payment_status='refunded'), ('delivered', 'refunded'))

    def test_any_status_may_follow_any_other(self):
        self.assertEqual(self.update(status='delivered'), ('delivered', 'unpaid'))
        self.assertEqual(self.update(status='pending'), ('pending', 'unpaid'))

    def test_updated_at_moves_forward(self):
        with self.app.app_context():
            before = db.session.get(Order, self.order_id).updated_at
        self.update(status='paid')
        with self.app.app_context():
            self.assertGreaterEqual(db.session.get(Order, self.order_id).updated_at, before)

    def test_missing_order(self):
        with self.app.app_context():
            with self.assertRaises(OrderNotFound):
                OrderService(db.session).update_status(999, status='paid')

    def test_no_fields(self):
        with self.assertRaises(NoFieldsSupplied):
            self.update()

    def test_unknown_values_are_rejected(self):
        with self.assertRaises(ValidationError):
            self.update(status='lost')
        with self.assertRaises(ValidationError):
            self.update(payment_status='maybe')
        self.assertEqual(self.update(status='paid'), ('paid', 'unpaid'))


if __name__ == '__main__':
    unittest.main(verbosity=2)
