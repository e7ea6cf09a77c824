"""
Security service - session-token authentication and the route access policy.

Access rules are declared once in ``ACCESS_POLICY`` (endpoint -> required
access) and enforced by a single ``before_request`` gate, so view functions
never compare role strings themselves.
"""

import logging
from enum import Enum
from typing import Optional

from flask import current_app, g, request
from flask_login import current_user

from storefront import login_manager
from storefront.errors import Forbidden, InvalidToken, Unauthorized
from storefront.models.user import ROLE_ADMIN
from storefront.services.auth_service import SessionUser, TokenConfig, TokenService

security_logger = logging.getLogger('storefront.security')


class Access(Enum):
    """Access level a route requires"""
    PUBLIC = 'public'
    AUTHENTICATED = 'authenticated'
    ADMIN = 'admin'


# Endpoints not listed here require an authenticated session
ACCESS_POLICY = {
    'main.health': Access.PUBLIC,

    'auth.register': Access.PUBLIC,
    'auth.login': Access.PUBLIC,
    'auth.logout': Access.PUBLIC,
    'auth.me': Access.AUTHENTICATED,

    'categories.list_categories': Access.PUBLIC,
    'categories.get_category': Access.PUBLIC,
    'categories.create_category': Access.ADMIN,
    'categories.update_category': Access.ADMIN,
    'categories.delete_category': Access.ADMIN,

    'products.list_products': Access.PUBLIC,
    'products.get_product': Access.PUBLIC,
    'products.create_product': Access.ADMIN,
    'products.update_product': Access.ADMIN,
    'products.delete_product': Access.ADMIN,

    'orders.list_orders': Access.AUTHENTICATED,
    'orders.get_order': Access.AUTHENTICATED,
    'orders.create_order': Access.AUTHENTICATED,
    'orders.update_order': Access.ADMIN,

    'cart.view_cart': Access.AUTHENTICATED,
    'cart.add_to_cart': Access.AUTHENTICATED,
    'cart.remove_from_cart': Access.AUTHENTICATED,
    'cart.checkout': Access.AUTHENTICATED,

    'users.list_users': Access.ADMIN,
    'users.update_user': Access.ADMIN,
    'users.delete_user': Access.ADMIN,
}


def get_token_service() -> TokenService:
    return TokenService(TokenConfig.from_app(current_app))


def load_session_user(req) -> Optional[SessionUser]:
    """
    Flask-Login request loader.

    Returns None for an absent or invalid token; the reason is kept on
    ``g.auth_error`` for the 401 message.
    """
    service = get_token_service()
    token = service.token_from_request(req)
    if token is None:
        g.auth_error = 'No token provided'
        return None

    try:
        claims = service.verify_token(token)
    except InvalidToken as e:
        g.auth_error = 'Invalid token'
        security_logger.warning('Rejected session token', extra={
            'event_type': 'authentication_failed',
            'reason': str(e)
        })
        return None

    return SessionUser(claims)


def require_auth(required_role: Optional[str] = None) -> SessionUser:
    """
    Return the authenticated principal of the current request.

    Raises:
        Unauthorized: missing or invalid session token
        Forbidden: ``required_role`` given and the principal has another role
    """
    if not current_user.is_authenticated:
        raise Unauthorized(g.get('auth_error', 'No token provided'))

    user = current_user._get_current_object()
    if required_role and user.role != required_role:
        security_logger.warning(f'Insufficient permissions for user {user.id}', extra={
            'event_type': 'authorization_failed',
            'required_role': required_role,
            'user_role': user.role
        })
        raise Forbidden('Insufficient permissions')

    return user


def access_for(endpoint: str) -> Access:
    return ACCESS_POLICY.get(endpoint, Access.AUTHENTICATED)


def enforce_access_policy():
    """before_request gate evaluating ACCESS_POLICY"""
    # Unknown routes fall through to the 404 handler
    if request.endpoint is None or request.method == 'OPTIONS':
        return None

    access = access_for(request.endpoint)
    if access is Access.AUTHENTICATED:
        require_auth()
    elif access is Access.ADMIN:
        require_auth(ROLE_ADMIN)
    return None


def init_security(app):
    """Wire the token request loader and the access gate into the app"""
    login_manager.request_loader(load_session_user)
    # Tokens are stateless; Flask-Login must not pin identities in the session
    login_manager.session_protection = None
    app.before_request(enforce_access_policy)
