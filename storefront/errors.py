"""
Error taxonomy and the JSON error handlers of the API.

Every failure leaves the service as ``{"success": false, "error": ...}``
with the status carried by the exception class.
"""
import logging

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    error = 'Internal server error'

    def __init__(self, message=None, **context):
        super().__init__(message or self.error)
        self.message = message
        self.context = context

    def to_dict(self):
        body = {'success': False, 'error': self.error}
        if self.message and self.message != self.error:
            body['message'] = self.message
        return body


class ValidationError(StorefrontError):
    status_code = 400
    error = 'Validation failed'

    def to_dict(self):
        # The message is the useful part for 400s
        return {'success': False, 'error': self.message or self.error}


class EmptyCart(ValidationError):
    error = 'No items in order'


class NoFieldsSupplied(ValidationError):
    error = 'No fields to update'


class ProductNotFound(ValidationError):
    error = 'Product not found'

    def __init__(self, product_id):
        super().__init__(f'Product {product_id} not found', product_id=product_id)
        self.product_id = product_id


class InsufficientStock(ValidationError):
    error = 'Insufficient stock'

    def __init__(self, product_id, requested=None, available=None):
        super().__init__(
            f'Insufficient stock for product {product_id}',
            product_id=product_id, requested=requested, available=available
        )
        self.product_id = product_id


class Unauthorized(StorefrontError):
    status_code = 401
    error = 'Unauthorized'


class InvalidToken(Unauthorized):
    def __init__(self, message='Invalid token'):
        super().__init__(message)


class InvalidCredentials(Unauthorized):
    error = 'Invalid credentials'


class Forbidden(StorefrontError):
    status_code = 403
    error = 'Forbidden'


class NotFound(StorefrontError):
    status_code = 404
    error = 'Not found'

    def to_dict(self):
        return {'success': False, 'error': self.message or self.error}


class OrderNotFound(NotFound):
    error = 'Order not found'


class Conflict(StorefrontError):
    status_code = 409
    error = 'Conflict'

    def to_dict(self):
        return {'success': False, 'error': self.message or self.error}


def register_error_handlers(app):
    """Register the JSON error handlers on the Flask app"""
    from storefront import db

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        log = logger.warning if error.status_code < 500 else logger.error
        log(f'{type(error).__name__}: {error}', extra={
            'event_type': 'request_error',
            'endpoint': request.endpoint,
            'status_code': error.status_code,
            **{k: v for k, v in error.context.items() if v is not None}
        })
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({
            'success': False,
            'error': error.name,
            'message': error.description
        }), error.code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        logger.warning(f'Constraint violation: {error.orig}', extra={
            'event_type': 'database_error',
            'endpoint': request.endpoint
        })
        return jsonify({
            'success': False,
            'error': 'Conflict',
            'message': 'The record conflicts with an existing one'
        }), 409

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.exception('Database error', extra={
            'event_type': 'database_error',
            'endpoint': request.endpoint
        })
        return jsonify({'success': False, 'error': 'Database error'}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception('Unhandled error', extra={
            'event_type': 'unhandled_error',
            'endpoint': request.endpoint
        })
        return jsonify({'success': False, 'error': 'Internal server error'}), 500
