"""
Session tokens and password authentication.

A session token is an HS256 JWT carrying ``userId``, ``email`` and ``role``.
It is stateless: verifying it needs only the shared secret and the clock.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask_login import UserMixin
from jose import JWTError, jwt

from storefront.errors import InvalidCredentials, InvalidToken, ValidationError
from storefront.models import User
from storefront.models.user import ROLE_ADMIN

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ('userId', 'email', 'role')


@dataclass
class TokenConfig:
    """Signing settings for session tokens"""
    secret: str
    algorithm: str = 'HS256'
    ttl: timedelta = timedelta(days=7)
    cookie_name: str = 'session'
    cookie_secure: bool = False

    @classmethod
    def from_app(cls, app) -> 'TokenConfig':
        """Read the settings from the Flask app config"""
        return cls(
            secret=app.config['JWT_SECRET'],
            algorithm=app.config.get('JWT_ALGORITHM', 'HS256'),
            ttl=timedelta(days=app.config.get('SESSION_TOKEN_TTL_DAYS', 7)),
            cookie_name=app.config.get('SESSION_TOKEN_COOKIE', 'session'),
            cookie_secure=app.config.get('SESSION_TOKEN_COOKIE_SECURE', False),
        )


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    role: str

    def to_dict(self):
        return {'id': self.user_id, 'email': self.email, 'role': self.role}


class SessionUser(UserMixin):
    """The authenticated principal of a request, built from verified claims"""

    def __init__(self, claims: TokenClaims):
        self.claims = claims
        self.id = claims.user_id
        self.email = claims.email
        self.role = claims.role

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def __repr__(self):
        return f'<SessionUser {self.id} {self.role}>'


class TokenService:
    """Issues and verifies signed session tokens"""

    def __init__(self, config: TokenConfig):
        self.config = config

    def issue_token(self, user, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            'userId': user.id,
            'email': user.email,
            'role': user.role,
            'iat': issued_at,
            'exp': issued_at + self.config.ttl,
        }
        return jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry and return the claims.

        Raises:
            InvalidToken: bad signature, expired, malformed or missing claims
        """
        try:
            payload = jwt.decode(token, self.config.secret, algorithms=[self.config.algorithm])
        except JWTError as e:
            raise InvalidToken(f'Invalid token: {e}') from e

        if any(payload.get(claim) is None for claim in REQUIRED_CLAIMS):
            raise InvalidToken('Invalid token: missing claims')

        try:
            user_id = int(payload['userId'])
        except (TypeError, ValueError) as e:
            raise InvalidToken('Invalid token: malformed user id') from e

        return TokenClaims(user_id=user_id, email=payload['email'], role=payload['role'])

    def token_from_request(self, request) -> Optional[str]:
        """Session cookie first, then an ``Authorization: Bearer`` header"""
        token = request.cookies.get(self.config.cookie_name)
        if token:
            return token

        auth_header = request.headers.get('Authorization', '')
        scheme, _, value = auth_header.partition(' ')
        if scheme.lower() == 'bearer' and value.strip():
            return value.strip()
        return None

    def set_cookie(self, response, token: str):
        response.set_cookie(
            self.config.cookie_name,
            token,
            max_age=int(self.config.ttl.total_seconds()),
            httponly=True,
            secure=self.config.cookie_secure,
            samesite='Lax',
            path='/',
        )
        return response

    def clear_cookie(self, response):
        response.delete_cookie(self.config.cookie_name, path='/')
        return response


def authenticate(session, email, password) -> User:
    """
    Return the user owning ``email`` when ``password`` matches.

    Unknown email and wrong password raise the same InvalidCredentials.

    Raises:
        ValidationError: email or password missing or not a string
        InvalidCredentials: no such user, or the password does not match
    """
    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        raise ValidationError('email and password are required')

    user = session.query(User).filter_by(email=email.strip().lower()).first()

    if user is None or not user.check_password(password):
        logger.warning('Login failed', extra={
            'event_type': 'login_failed',
            'user_found': user is not None
        })
        raise InvalidCredentials()

    logger.info(f'Login successful for user {user.id}', extra={
        'event_type': 'login_success',
        'user_id': user.id
    })
    return user
