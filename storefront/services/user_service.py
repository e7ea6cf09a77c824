import logging

from storefront.errors import Conflict, NoFieldsSupplied, NotFound, ValidationError
from storefront.models import User
from storefront.models.user import ROLE_CUSTOMER, ROLES
from storefront.services.transaction import atomic

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(value):
    if not isinstance(value, str) or '@' not in value.strip():
        raise ValidationError('A valid email is required')
    return value.strip().lower()


class UserService:

    def __init__(self, session):
        self.session = session

    def _email_taken(self, email, exclude_id=None):
        query = self.session.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def register(self, name, email, password):
        """Create a customer account"""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('name is required')
        email = normalize_email(email)
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'password must be at least {MIN_PASSWORD_LENGTH} characters')

        with atomic(self.session, 'register_user'):
            if self._email_taken(email):
                raise Conflict('Email already exists')
            user = User(name=name.strip(), email=email, role=ROLE_CUSTOMER)
            user.set_password(password)
            self.session.add(user)

        logger.info(f'User registered: {user.id}', extra={
            'event_type': 'user_registered',
            'user_id': user.id
        })
        return user

    def list_users(self, page=1, limit=10):
        query = self.session.query(User).order_by(User.created_at.desc(), User.id.desc())
        return query.paginate(page=page, per_page=limit, error_out=False)

    def get_user(self, user_id):
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFound('User not found')
        return user

    def update_user(self, user_id, data):
        """Admin update of role, name and email"""
        user = self.get_user(user_id)
        if not any(field in data for field in ('role', 'name', 'email')):
            raise NoFieldsSupplied()

        with atomic(self.session, 'update_user'):
            if 'role' in data:
                if data['role'] not in ROLES:
                    raise ValidationError(f'role must be one of: {", ".join(ROLES)}')
                if data['role'] != user.role:
                    logger.info(f'Role of user {user.id} changed to {data["role"]}', extra={
                        'event_type': 'user_role_changed',
                        'user_id': user.id,
                        'previous_role': user.role
                    })
                user.role = data['role']
            if 'name' in data:
                if not isinstance(data['name'], str) or not data['name'].strip():
                    raise ValidationError('name must not be empty')
                user.name = data['name'].strip()
            if 'email' in data:
                email = normalize_email(data['email'])
                if self._email_taken(email, exclude_id=user.id):
                    raise Conflict('Email already exists')
                user.email = email

        return user

    def delete_user(self, user_id):
        user = self.get_user(user_id)
        with atomic(self.session, 'delete_user'):
            self.session.delete(user)
        logger.info(f'User {user_id} deleted', extra={
            'event_type': 'user_deleted',
            'user_id': user_id
        })
