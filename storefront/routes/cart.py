from flask import Blueprint
from flask_login import current_user

from storefront import db
from storefront.routes import json_body, success_response
from storefront.services.cart_service import CartService

bp = Blueprint('cart', __name__, url_prefix='/api')


def _cart():
    return CartService(db.session, current_user.id)


@bp.route('/cart', methods=['GET'])
def view_cart():
    return success_response(_cart().summary())


@bp.route('/cart', methods=['POST'])
def add_to_cart():
    data = json_body()
    cart_item = _cart().add(data.get('product_id'), data.get('quantity', 1))
    return success_response(cart_item.to_dict(), message='Added to cart', status=201)


@bp.route('/cart/<int:item_id>', methods=['DELETE'])
def remove_from_cart(item_id):
    _cart().remove(item_id)
    return success_response(message='Item removed from cart')


@bp.route('/checkout', methods=['POST'])
def checkout():
    data = json_body()
    placed = _cart().checkout(data.get('shipping_address'), data.get('notes'))
    return success_response(placed.to_dict(), message='Checkout success', status=201)
