import logging
from decimal import Decimal

from storefront.errors import EmptyCart, Forbidden, NotFound, ValidationError
from storefront.models import CartItem, Product
from storefront.services.order_service import OrderLine, OrderService
from storefront.services.transaction import atomic

logger = logging.getLogger(__name__)


class CartService:
    """Server-side cart of one user"""

    def __init__(self, session, user_id):
        self.session = session
        self.user_id = user_id

    def items(self):
        return (
            self.session.query(CartItem)
            .filter_by(user_id=self.user_id)
            .order_by(CartItem.id)
            .all()
        )

    def summary(self):
        items = self.items()
        total = sum((item.product.price * item.quantity for item in items), Decimal('0'))
        return {
            'items': [item.to_dict() for item in items],
            'item_count': len(items),
            'total': total,
        }

    def add(self, product_id, quantity=1):
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError('product_id must be an integer')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError('quantity must be a positive integer')

        product = self.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFound('Product not found')

        with atomic(self.session, 'cart_add'):
            cart_item = (
                self.session.query(CartItem)
                .filter_by(user_id=self.user_id, product_id=product_id)
                .first()
            )
            if cart_item:
                old_quantity = cart_item.quantity
                cart_item.quantity = old_quantity + quantity
                logger.debug(f'Updated cart item quantity from {old_quantity} to {cart_item.quantity}')
            else:
                cart_item = CartItem(user_id=self.user_id, product_id=product_id, quantity=quantity)
                self.session.add(cart_item)

        logger.info(f'User {self.user_id} added product {product_id} to cart', extra={
            'event_type': 'cart_add',
            'user_id': self.user_id,
            'product_id': product_id,
            'quantity': quantity
        })
        return cart_item

    def remove(self, item_id):
        cart_item = self.session.get(CartItem, item_id)
        if cart_item is None:
            raise NotFound('Cart item not found')
        if cart_item.user_id != self.user_id:
            raise Forbidden('Cart item belongs to another user')

        with atomic(self.session, 'cart_remove'):
            self.session.delete(cart_item)

    def checkout(self, shipping_address, notes=None):
        """Place an order from the cart and empty it in the same transaction"""
        items = self.items()
        if not items:
            logger.warning('Checkout attempted with empty cart', extra={
                'event_type': 'checkout_error',
                'user_id': self.user_id,
                'error': 'empty_cart'
            })
            raise EmptyCart('Cart is empty')

        lines = [OrderLine(product_id=item.product_id, quantity=item.quantity) for item in items]
        item_ids = [item.id for item in items]

        def clear_cart(session):
            session.query(CartItem).filter(CartItem.id.in_(item_ids)).delete(synchronize_session=False)

        return OrderService(self.session).place_order(
            self.user_id, lines, shipping_address, notes, after_insert=clear_cart
        )
