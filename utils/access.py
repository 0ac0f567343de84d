from collections import namedtuple

from flask import request

from .exceptions import AuthenticationError, NotFoundError, OwnershipError

USER_ID_HEADER = 'X-User-Id'
USER_ROLE_HEADER = 'X-User-Role'
ADMIN_ROLE = 'admin'

Identity = namedtuple('Identity', ['user_id', 'role'])


def current_identity():
    """Caller identity forwarded by the authenticating gateway"""
    user_id = (request.headers.get(USER_ID_HEADER) or '').strip()
    if not user_id:
        raise AuthenticationError('Not authenticated. Please login again.')
    role = (request.headers.get(USER_ROLE_HEADER) or 'user').strip().lower()
    return Identity(user_id=user_id, role=role)


def is_admin(identity):
    return identity.role == ADMIN_ROLE


def require_admin(identity):
    if not is_admin(identity):
        raise OwnershipError('Admin role required to access this route')


def ensure_owner(record, identity, message='Not authorized to access this resource', allow_admin=True):
    """Raise OwnershipError unless the caller owns the record (or is an admin)"""
    if record.owner == identity.user_id:
        return
    if allow_admin and is_admin(identity):
        return
    raise OwnershipError(message)


def get_owned(store, model, record_id, identity, label, message=None):
    """Fetch a record by id and check the caller may use it"""
    record = store.find_by_id(model, record_id)
    if record is None:
        raise NotFoundError(f'{label} not found')
    ensure_owner(record, identity, message or f'Not authorized to access this {label.lower()}')
    if getattr(record, 'is_deleted', False):
        raise NotFoundError(f'{label} has been deleted')
    return record
