"""
Order placement and the admin status workflow.

Placement runs as one transaction: products are read with row locks, the
total is computed from those prices, the order and its items are inserted
and every stock decrement is guarded by ``stock >= quantity`` so two
concurrent orders can never both take the last unit.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update

from storefront.errors import (
    EmptyCart, Forbidden, InsufficientStock, NoFieldsSupplied, OrderNotFound,
    ProductNotFound, ValidationError,
)
from storefront.models import Order, OrderItem, Product
from storefront.models.order import ORDER_STATUSES, PAYMENT_STATUSES
from storefront.services.transaction import atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int


@dataclass
class PlacedOrder:
    order_id: int
    total: Decimal

    def to_dict(self):
        return {'orderId': self.order_id, 'total': self.total}


def _positive_int(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f'{field} must be a positive integer')
    return value


def parse_order_lines(items) -> List[OrderLine]:
    """Validate the ``[{product_id, quantity}, ...]`` payload"""
    if not items:
        raise EmptyCart()
    if not isinstance(items, list):
        raise ValidationError('items must be a list')

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError('each item needs product_id and quantity')
        lines.append(OrderLine(
            product_id=_positive_int(item.get('product_id'), 'product_id'),
            quantity=_positive_int(item.get('quantity'), 'quantity'),
        ))
    return lines


def lock_products(product_ids):
    """``SELECT ... FOR UPDATE`` over the given products, locking rows in primary-key order"""
    return (
        select(Product)
        .where(Product.id.in_(sorted(set(product_ids))))
        .order_by(Product.id)
        .with_for_update()
    )


class OrderService:
    """Order transaction and queries over one database session"""

    def __init__(self, session):
        self.session = session

    def place_order(self, user_id, lines: List[OrderLine], shipping_address, notes=None,
                    after_insert=None) -> PlacedOrder:
        """
        Place an order atomically.

        ``after_insert(session)`` runs inside the same transaction once the
        order rows exist; checkout uses it to empty the cart.

        Raises:
            EmptyCart, ValidationError, ProductNotFound, InsufficientStock
        """
        if not lines:
            raise EmptyCart()
        if not isinstance(shipping_address, str) or not shipping_address.strip():
            raise ValidationError('shipping_address is required')
        if notes is not None and not isinstance(notes, str):
            raise ValidationError('notes must be a string')

        logger.info(f'Creating order for user {user_id}', extra={
            'event_type': 'order_create',
            'user_id': user_id,
            'item_count': len(lines)
        })

        with atomic(self.session, 'place_order'):
            products = {
                product.id: product
                for product in self.session.execute(lock_products(line.product_id for line in lines)).scalars()
            }
            for line in lines:
                if line.product_id not in products:
                    raise ProductNotFound(line.product_id)

            demand = OrderedDict()
            for line in lines:
                demand[line.product_id] = demand.get(line.product_id, 0) + line.quantity
            for product_id, requested in demand.items():
                available = products[product_id].stock
                if requested > available:
                    raise InsufficientStock(product_id, requested=requested, available=available)

            total = sum(
                (Decimal(products[line.product_id].price) * line.quantity for line in lines),
                Decimal('0')
            )

            order = Order(
                user_id=user_id,
                total=total,
                shipping_address=shipping_address.strip(),
                notes=notes,
                status='pending',
                payment_status='unpaid',
            )
            self.session.add(order)
            for line in lines:
                self.session.add(OrderItem(
                    order=order,
                    product_id=line.product_id,
                    price=products[line.product_id].price,
                    quantity=line.quantity,
                ))
            self.session.flush()

            for line in lines:
                result = self.session.execute(
                    update(Product)
                    .where(Product.id == line.product_id, Product.stock >= line.quantity)
                    .values(stock=Product.stock - line.quantity)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    # Lost the race to a concurrent order
                    raise InsufficientStock(line.product_id, requested=line.quantity)

            if after_insert is not None:
                after_insert(self.session)

            order_id = order.id

        logger.info('Order placed successfully', extra={
            'event_type': 'order_success',
            'user_id': user_id,
            'order_id': order_id,
            'total_amount': float(total)
        })
        return PlacedOrder(order_id=order_id, total=total)

    def list_orders(self, viewer, status=None, user_id=None, page=1, limit=10):
        """Customers see their own orders; admins see all, optionally per user"""
        query = self.session.query(Order)

        if not viewer.is_admin:
            query = query.filter(Order.user_id == viewer.id)
        elif user_id is not None:
            query = query.filter(Order.user_id == user_id)

        if status and status != 'all':
            query = query.filter(Order.status == status)

        query = query.order_by(Order.created_at.desc(), Order.id.desc())
        return query.paginate(page=page, per_page=limit, error_out=False)

    def get_order(self, order_id, viewer=None) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFound()

        if viewer is not None and not viewer.is_admin and order.user_id != viewer.id:
            raise Forbidden('You do not have access to this order')
        return order

    def update_status(self, order_id, status: Optional[str] = None,
                      payment_status: Optional[str] = None) -> Order:
        """
        Partial update of ``status`` and/or ``payment_status``.

        Any enumerated value may follow any other.
        """
        order = self.get_order(order_id)

        if status is None and payment_status is None:
            raise NoFieldsSupplied()
        if status is not None and status not in ORDER_STATUSES:
            raise ValidationError(f'status must be one of: {", ".join(ORDER_STATUSES)}')
        if payment_status is not None and payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f'payment_status must be one of: {", ".join(PAYMENT_STATUSES)}')

        previous = (order.status, order.payment_status)
        with atomic(self.session, 'update_order_status'):
            if status is not None:
                order.status = status
            if payment_status is not None:
                order.payment_status = payment_status
            # onupdate only fires when a column actually changes
            order.updated_at = datetime.utcnow()

        logger.info(f'Order {order_id} updated', extra={
            'event_type': 'order_status_changed',
            'order_id': order_id,
            'previous_status': previous[0],
            'previous_payment_status': previous[1],
            'status': order.status,
            'payment_status': order.payment_status
        })
        return order
