from flask import Blueprint, request
from flask_login import current_user

from storefront import db
from storefront.routes import int_arg, json_body, page_args, success_response
from storefront.services.order_service import OrderService, parse_order_lines

bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@bp.route('', methods=['GET'])
def list_orders():
    page, limit = page_args()
    result = OrderService(db.session).list_orders(
        current_user,
        status=request.args.get('status'),
        user_id=int_arg('userId'),
        page=page,
        limit=limit,
    )
    return success_response([order.to_dict() for order in result.items], pagination=result)


@bp.route('', methods=['POST'])
def create_order():
    data = json_body()
    placed = OrderService(db.session).place_order(
        current_user.id,
        parse_order_lines(data.get('items')),
        data.get('shipping_address'),
        data.get('notes'),
    )
    return success_response(placed.to_dict(), message='Order created successfully', status=201)


@bp.route('/<int:order_id>', methods=['GET'])
def get_order(order_id):
    order = OrderService(db.session).get_order(order_id, viewer=current_user)
    return success_response(order.to_dict(include_items=True))


@bp.route('/<int:order_id>', methods=['PUT'])
def update_order(order_id):
    data = json_body()
    order = OrderService(db.session).update_status(
        order_id,
        status=data.get('status'),
        payment_status=data.get('payment_status'),
    )
    return success_response(order.to_dict(), message='Order updated successfully')
