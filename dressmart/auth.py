from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from .db import get_collection, to_object_id
from .errors import Forbidden, Unauthorized, ValidationError
from .models import Cart, User
from .security import (create_credential, insert_user, issue_token, normalize_email,
                       verify_credential, verify_token)
from .web import request_data

auth_bp = Blueprint('auth', __name__)


def get_request_token():
    """Raw token from the ``auth-token`` header or an ``Authorization: Bearer`` header"""
    token = request.headers.get('auth-token', '').strip()
    if token:
        return token
    authorization = request.headers.get('Authorization', '')
    scheme, _, credentials = authorization.partition(' ')
    if scheme.lower() == 'bearer' and credentials.strip():
        return credentials.strip()
    return None


def authenticate():
    """Verify the request token and load its user into ``g``"""
    token = get_request_token()
    if not token:
        raise Unauthorized('Authorization token required')

    try:
        claims = verify_token(token)
    except Unauthorized as e:
        current_app.logger.warning('Rejected token on %s: %s', request.path, e.message)
        raise

    user_id = to_object_id(claims['user']['id'])
    user = get_collection('users').find_one({'_id': user_id}) if user_id else None
    if not user:
        raise Unauthorized('User not found')
    if not User.is_active(user):
        raise Forbidden('Account is disabled')

    g.token_claims = claims
    g.current_user = user
    return user


def has_role(user, role):
    return role in (user.get('roles') or ['user'])


def require_admin():
    user = authenticate()
    if not has_role(user, 'admin'):
        current_app.logger.warning('Non-admin user %s denied access to %s', user['_id'], request.path)
        raise Forbidden('Access denied: Not an admin')
    return user


def token_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        authenticate()
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        require_admin()
        return f(*args, **kwargs)
    return decorated_function


def _validate_signup(email, password):
    if not email or not password:
        raise ValidationError('Email and password are required')
    if '@' not in email:
        raise ValidationError('Invalid email address')
    min_length = current_app.config['PASSWORD_MIN_LENGTH']
    if len(password) < min_length:
        raise ValidationError(f'Password must be at least {min_length} characters')


# ========== ACCOUNT ROUTES ==========

@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Create a shopper account and sign it in"""
    data = request_data()
    email = normalize_email(data.get('email'))
    password = str(data.get('password') or '')
    _validate_signup(email, password)

    password_hash = create_credential(email, password)
    user = User.create(
        email,
        password_hash,
        name=str(data.get('name') or data.get('username') or '').strip() or None,
        cart=Cart.empty_slots(current_app.config['CART_SLOTS'])
    )
    insert_user(user)
    current_app.logger.info('New signup: %s', email)

    return jsonify({'success': True, 'token': issue_token(user)})


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request_data()
    email = normalize_email(data.get('email'))
    password = str(data.get('password') or '')

    if not email or not password:
        raise ValidationError('Email and password are required')

    user = verify_credential(email, password)
    if not user:
        current_app.logger.warning('Failed login for %s', email)
        raise Unauthorized('Invalid credentials')
    if not User.is_active(user):
        current_app.logger.warning('Login attempt on disabled account %s', email)
        raise Forbidden('Account is disabled')

    roles = user.get('roles') or ['user']
    return jsonify({
        'success': True,
        'token': issue_token(user),
        'user': {'id': str(user['_id']), 'email': user['email'], 'roles': roles}
    })


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register an account without signing it in.

    ``isAdmin`` is only honoured when ALLOW_ADMIN_REGISTRATION is set.
    """
    data = request_data()
    email = normalize_email(data.get('email'))
    password = str(data.get('password') or '')
    _validate_signup(email, password)

    roles = ['user']
    if data.get('isAdmin') in (True, 'true', '1', 1):
        if not current_app.config['ALLOW_ADMIN_REGISTRATION']:
            raise Forbidden('Admin registration is disabled')
        roles = ['admin']

    password_hash = create_credential(email, password)
    user = User.create(email, password_hash, name=str(data.get('name') or '').strip() or None, roles=roles)
    insert_user(user)
    current_app.logger.info('Registered %s with roles %s', email, roles)

    return jsonify({'success': True, 'message': 'User registered successfully'})


@auth_bp.route('/verify-token', methods=['GET'])
def check_token():
    token = get_request_token()
    if not token:
        raise Unauthorized('Access denied')
    claims = verify_token(token)
    return jsonify({'success': True, 'user': claims['user']})
