#!/usr/bin/env python3
"""
Logging setup tests
"""
import logging
import unittest

from storefront.logging_config import RequestFormatter

from api_test_case import StorefrontTestCase

FORMAT = '%(method)s %(url)s %(remote_addr)s %(message)s'


class TestRequestFormatter(unittest.TestCase):
    def test_outside_request_context(self):
        record = logging.LogRecord('storefront', logging.INFO, __file__, 1, 'hello', None, None)
        self.assertEqual(RequestFormatter(FORMAT).format(record), 'N/A N/A N/A hello')


class TestSetupLogging(StorefrontTestCase):
    def test_inside_request_context(self):
        record = logging.LogRecord('storefront', logging.INFO, __file__, 1, 'hello', None, None)
        with self.app.test_request_context('/api/products', method='POST'):
            line = RequestFormatter('%(method)s %(url)s %(message)s').format(record)
        self.assertEqual(line, 'POST http://localhost/api/products hello')

    def test_handler_is_not_duplicated(self):
        from storefront import create_app

        before = len(self.app.logger.handlers)
        create_app({'TESTING': True, 'SQLALCHEMY_DATABASE_URI': 'sqlite://'})
        self.assertEqual(len(self.app.logger.handlers), before)
        self.assertFalse(self.app.logger.propagate)


if __name__ == '__main__':
    unittest.main(verbosity=2)
