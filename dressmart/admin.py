from flask import Blueprint, current_app, g, jsonify

from .auth import admin_required
from .db import get_collection, to_object_id
from .errors import NotFound, ValidationError
from .models import ROLES, User
from .orders import list_all_orders, order_to_json, update_status
from .web import request_data

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

USER_PROJECTION = {'password': 0, 'cartData': 0}


def _find_user_id(user_id):
    object_id = to_object_id(user_id)
    if not object_id:
        raise NotFound('User not found')
    return object_id


# ========== ADMIN OPERATIONS ==========

def list_users():
    users = get_collection('users').find({}, USER_PROJECTION).sort('date', -1)
    return [User.listing(user) for user in users]


def set_roles(user_id, roles):
    """Replace the user's role set wholesale"""
    if not isinstance(roles, list):
        raise ValidationError('Roles must be an array')
    invalid = [role for role in roles if role not in ROLES]
    if invalid:
        raise ValidationError('Invalid role: ' + ', '.join(str(role) for role in invalid))

    roles = list(dict.fromkeys(roles))
    object_id = _find_user_id(user_id)
    result = get_collection('users').update_one({'_id': object_id}, {'$set': {'roles': roles}})
    if not result.matched_count:
        raise NotFound('User not found')

    current_app.logger.info('Roles of user %s set to %s by %s', object_id, roles, g.current_user['_id'])
    return get_collection('users').find_one({'_id': object_id}, USER_PROJECTION)


def toggle_active(user_id):
    object_id = _find_user_id(user_id)
    users = get_collection('users')
    user = users.find_one({'_id': object_id}, USER_PROJECTION)
    if not user:
        raise NotFound('User not found')

    # Filter on the value read so a concurrent toggle cannot be lost
    active = User.is_active(user)
    users.update_one({'_id': object_id, 'isActive': user.get('isActive')}, {'$set': {'isActive': not active}})
    user = users.find_one({'_id': object_id}, USER_PROJECTION)

    current_app.logger.info('User %s active=%s set by %s', object_id, User.is_active(user), g.current_user['_id'])
    return user


# ========== ADMIN ROUTES ==========

@admin_bp.route('/users', methods=['GET'])
@admin_required
def admin_users():
    return jsonify({'status': 'success', 'success': True, 'data': {'users': list_users()}})


@admin_bp.route('/users/<user_id>/roles', methods=['PUT'])
@admin_required
def admin_user_roles(user_id):
    user = set_roles(user_id, request_data().get('roles'))
    return jsonify({'success': True, 'user': User.account(user)})


@admin_bp.route('/users/<user_id>/status', methods=['PUT'])
@admin_required
def admin_user_status(user_id):
    user = toggle_active(user_id)
    return jsonify({'success': True, 'user': User.account(user)})


@admin_bp.route('/orders', methods=['GET'])
@admin_required
def admin_orders():
    orders = [order_to_json(order, user, include_user=True) for order, user in list_all_orders()]
    return jsonify({'success': True, 'orders': orders})


@admin_bp.route('/orders/<order_id>/status', methods=['PUT'])
@admin_required
def admin_order_status(order_id):
    order, user = update_status(order_id, request_data().get('status'), updated_by=g.current_user['_id'])
    return jsonify({'success': True, 'order': order_to_json(order, user, include_user=True)})
