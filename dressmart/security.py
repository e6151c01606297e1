"""Password hashing and bearer token handling."""
from datetime import timedelta

import jwt
from flask import current_app
from pymongo.errors import DuplicateKeyError
from werkzeug.security import check_password_hash, generate_password_hash

from .db import get_collection
from .errors import Conflict, Unauthorized
from .models import utcnow

_dummy_hashes = {}


def normalize_email(email):
    return str(email).strip().lower() if email else ''


def hash_password(password):
    return generate_password_hash(password, method=current_app.config['PASSWORD_HASH_METHOD'])


def _dummy_hash():
    method = current_app.config['PASSWORD_HASH_METHOD']
    if method not in _dummy_hashes:
        _dummy_hashes[method] = generate_password_hash('dressmart-timing-guard', method=method)
    return _dummy_hashes[method]


def create_credential(email, password):
    """Hash ``password`` for a new identity, refusing emails already registered."""
    if get_collection('users').find_one({'email': normalize_email(email)}, {'_id': 1}):
        raise Conflict('User already exists')
    return hash_password(password)


def insert_user(user):
    """Insert a user document; the unique email index catches racing signups."""
    try:
        result = get_collection('users').insert_one(user)
    except DuplicateKeyError:
        raise Conflict('User already exists')
    user['_id'] = result.inserted_id
    return user


def verify_credential(email, password):
    """Return the user whose stored hash matches ``password``, else None.

    Unknown emails are checked against a dummy hash so both failure modes
    take the same time.
    """
    user = get_collection('users').find_one({'email': normalize_email(email)})
    if not user or not user.get('password'):
        check_password_hash(_dummy_hash(), password or '')
        return None
    if not check_password_hash(user['password'], password or ''):
        return None
    return user


def issue_token(user, expires_hours=None):
    config = current_app.config
    if expires_hours is None:
        expires_hours = config['JWT_EXPIRATION_HOURS']

    user_id = str(user['_id'])
    now = utcnow()
    claims = {
        'sub': user_id,
        'user': {'id': user_id, 'roles': list(user.get('roles') or ['user'])},
        'iat': now
    }
    if expires_hours:
        claims['exp'] = now + timedelta(hours=expires_hours)
    return jwt.encode(claims, config['JWT_SECRET'], algorithm=config['JWT_ALGORITHM'])


def verify_token(token):
    """Decode ``token`` and return its claims, raising Unauthorized if it is not valid."""
    config = current_app.config
    try:
        claims = jwt.decode(token, config['JWT_SECRET'], algorithms=[config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        raise Unauthorized('Token expired')
    except jwt.InvalidTokenError:
        raise Unauthorized('Invalid token')

    user = claims.get('user')
    if not isinstance(user, dict) or not user.get('id'):
        raise Unauthorized('Invalid token')
    return claims
