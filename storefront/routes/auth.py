from flask import Blueprint, current_app
from flask_login import current_user

from storefront import db
from storefront.routes import json_body, success_response
from storefront.services.auth_service import authenticate
from storefront.services.security_service import get_token_service
from storefront.services.user_service import UserService

bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@bp.route('/register', methods=['POST'])
def register():
    data = json_body()
    user = UserService(db.session).register(data.get('name'), data.get('email'), data.get('password'))
    return success_response(user.to_dict(), message='Registration successful', status=201)


@bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    user = authenticate(db.session, data.get('email'), data.get('password'))

    tokens = get_token_service()
    token = tokens.issue_token(user)

    current_app.logger.info(f'Session issued for user {user.id}', extra={
        'event_type': 'session_issued',
        'user_id': user.id,
        'role': user.role
    })

    response, status = success_response({'token': token, 'user': user.to_dict()}, message='Login successful')
    tokens.set_cookie(response, token)
    return response, status


@bp.route('/logout', methods=['POST'])
def logout():
    response, status = success_response(message='Logged out')
    get_token_service().clear_cookie(response)
    return response, status


@bp.route('/me')
def me():
    return success_response(current_user.claims.to_dict())
