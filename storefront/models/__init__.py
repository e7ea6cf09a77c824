from storefront.models.user import User
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.models.order import Order, OrderItem
from storefront.models.cart import CartItem

__all__ = ['User', 'Category', 'Product', 'Order', 'OrderItem', 'CartItem']
