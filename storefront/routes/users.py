from flask import Blueprint

from storefront import db
from storefront.routes import json_body, page_args, success_response
from storefront.services.user_service import UserService

bp = Blueprint('users', __name__, url_prefix='/api/users')


@bp.route('', methods=['GET'])
def list_users():
    page, limit = page_args()
    result = UserService(db.session).list_users(page=page, limit=limit)
    return success_response([user.to_dict() for user in result.items], pagination=result)


@bp.route('/<int:user_id>', methods=['PUT'])
def update_user(user_id):
    user = UserService(db.session).update_user(user_id, json_body())
    return success_response(user.to_dict(), message='User updated successfully')


@bp.route('/<int:user_id>', methods=['DELETE'])
def delete_user(user_id):
    UserService(db.session).delete_user(user_id)
    return success_response(message='User deleted successfully')
