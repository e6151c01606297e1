import math
import re

from flask import Blueprint, current_app, g, jsonify
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from .auth import token_required
from .catalog import parse_numeric_id
from .db import get_collection, serialize_doc, to_object_id
from .errors import NotFound, ValidationError
from .models import ORDER_STATUSES, PAYMENT_METHODS, SHIPPING_FIELDS, Cart, Order, utcnow
from .notifications import send_order_confirmation, send_status_update
from .web import request_data

orders_bp = Blueprint('orders', __name__)

CARD_LAST4 = re.compile(r'^\d{4}$')


def _text(value):
    return str(value).strip() if value is not None else ''


def parse_amount(value, field):
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError(f'Invalid {field}')
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}')
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f'Invalid {field}')
    return amount


def snapshot_items(items):
    """Copy the line items the client sent, validating every field"""
    if not isinstance(items, list) or not items:
        raise ValidationError('Order must contain at least one item')

    snapshot = []
    for position, item in enumerate(items, 1):
        if not isinstance(item, dict):
            raise ValidationError(f'Invalid order item at position {position}')
        product_id = parse_numeric_id(item.get('productId'))
        if product_id is None:
            raise ValidationError(f'Invalid order item at position {position}: productId')
        for field in ('name', 'image'):
            if not _text(item.get(field)):
                raise ValidationError(f'Invalid order item at position {position}: {field}')
        try:
            quantity = Cart.parse_quantity(item.get('quantity'))
        except ValidationError:
            raise ValidationError(f'Invalid order item at position {position}: quantity')

        snapshot.append({
            'productId': product_id,
            'name': _text(item['name']),
            'image': _text(item['image']),
            'price': parse_amount(item.get('price'), f'order item at position {position}: price'),
            'quantity': quantity
        })
    return snapshot


def validate_shipping(shipping_info):
    shipping = {}
    for field in SHIPPING_FIELDS:
        value = _text(shipping_info.get(field))
        if not value:
            raise ValidationError(f'Missing shipping field: {field}')
        shipping[field] = value
    return shipping


def validate_payment(payment_info):
    method = payment_info.get('method')
    if method not in PAYMENT_METHODS:
        raise ValidationError('Invalid payment method')

    payment = {'method': method, 'status': 'Pending'}
    if method == 'creditCard':
        card_last4 = _text(payment_info.get('cardLast4'))
        if not card_last4:
            raise ValidationError('Card information required for credit card payment')
        if not CARD_LAST4.match(card_last4):
            raise ValidationError('cardLast4 must be the last four digits of the card')
        payment['cardLast4'] = card_last4
        if _text(payment_info.get('cardExpiry')):
            payment['cardExpiry'] = _text(payment_info['cardExpiry'])
    return payment


def verify_total(items, total_amount, shipping_fee):
    """Reject orders whose prices or total disagree with the catalog"""
    product_ids = list({item['productId'] for item in items})
    prices = {
        product['id']: float(product.get('new_price') or 0)
        for product in get_collection('products').find({'id': {'$in': product_ids}}, {'id': 1, 'new_price': 1})
    }
    expected = shipping_fee
    for item in items:
        if item['productId'] not in prices:
            raise ValidationError(f"Unknown product {item['productId']}")
        if abs(prices[item['productId']] - item['price']) > 0.01:
            raise ValidationError(f"Price of {item['name']} does not match the catalog")
        expected += prices[item['productId']] * item['quantity']
    if abs(expected - total_amount) > 0.01:
        raise ValidationError('Order total does not match catalog prices')


def order_to_json(order, user=None, include_user=False):
    data = serialize_doc(order)
    if include_user:
        data['user'] = Order.user_summary(user)
    return data


# ========== ORDER OPERATIONS ==========

def place_order(user, data):
    """Persist a snapshot of the submitted order and clear the user's cart.

    Returns ``(order, cart_cleared)``. The order insert and the cart reset
    are separate writes; a failed reset leaves the order in place.
    """
    items = snapshot_items(data.get('items'))

    shipping_info = data.get('shippingInfo')
    payment_info = data.get('paymentInfo')
    total_amount = data.get('totalAmount')
    if not isinstance(shipping_info, dict) or not isinstance(payment_info, dict) or total_amount is None:
        raise ValidationError('Missing required fields')

    shipping = validate_shipping(shipping_info)
    payment = validate_payment(payment_info)
    total_amount = parse_amount(total_amount, 'totalAmount')
    shipping_fee = float(current_app.config['SHIPPING_FEE'])

    if current_app.config['VERIFY_ORDER_TOTALS']:
        verify_total(items, total_amount, shipping_fee)

    order = Order.create(user['_id'], items, shipping, payment, total_amount, shipping_fee)
    result = get_collection('orders').insert_one(order)
    order['_id'] = result.inserted_id
    current_app.logger.info('Order %s placed by user %s (%.2f)', order['_id'], user['_id'], total_amount)

    cart_cleared = True
    try:
        get_collection('users').update_one({'_id': user['_id']}, {'$set': {'cartData': {}}})
    except PyMongoError as e:
        cart_cleared = False
        current_app.logger.error('Order %s placed but cart of user %s was not cleared: %s',
                                 order['_id'], user['_id'], e)

    send_order_confirmation(order)
    return order, cart_cleared


def get_order(user_id, order_id):
    object_id = to_object_id(order_id)
    order = get_collection('orders').find_one({'_id': object_id, 'user': user_id}) if object_id else None
    if not order:
        raise NotFound('Order not found')
    return order


def list_all_orders():
    """All orders, newest first, each paired with its owner (or None)"""
    orders = list(get_collection('orders').find().sort('createdAt', -1))
    user_ids = list({order['user'] for order in orders if order.get('user')})
    users = {
        user['_id']: user
        for user in get_collection('users').find({'_id': {'$in': user_ids}}, {'name': 1, 'email': 1})
    }
    return [(order, users.get(order.get('user'))) for order in orders]


def update_status(order_id, status, updated_by=None):
    """Set any valid status; no transition order is enforced"""
    if status not in ORDER_STATUSES:
        raise ValidationError('Invalid status value')
    object_id = to_object_id(order_id)
    if not object_id:
        raise NotFound('Order not found')

    now = utcnow()
    order = get_collection('orders').find_one_and_update(
        {'_id': object_id},
        {
            '$set': {'status': status, 'updatedAt': now},
            '$push': {'statusHistory': {'status': status, 'timestamp': now, 'updatedBy': updated_by}}
        },
        return_document=ReturnDocument.AFTER
    )
    if not order:
        raise NotFound('Order not found')

    current_app.logger.info('Order %s status set to %s', object_id, status)
    user = get_collection('users').find_one({'_id': order.get('user')}, {'name': 1, 'email': 1})
    send_status_update(order, user)
    return order, user


# ========== ORDER ROUTES ==========

@orders_bp.route('/placeorder', methods=['POST'])
@token_required
def placeorder():
    order, cart_cleared = place_order(g.current_user, request_data())
    return jsonify({
        'success': True,
        'orderId': str(order['_id']),
        'message': 'Order placed successfully',
        'cartCleared': cart_cleared
    }), 201


@orders_bp.route('/orders/<order_id>', methods=['GET'])
@token_required
def order_details(order_id):
    order = get_order(g.current_user['_id'], order_id)
    return jsonify({'success': True, 'order': order_to_json(order)})
