from flask import Blueprint, current_app, g, jsonify

from .auth import token_required
from .db import get_collection
from .errors import InvalidPromoCode, InvalidQuantity, NotFound, ValidationError
from .models import Cart
from .web import request_data

cart_bp = Blueprint('cart', __name__)

PROMO_CODES = {
    'SAVE10': 10,
    'OFF20': 20,
    'DRESS5': 5,
}


class CartSummary:
    def __init__(self, total_amount, total_items, discount_percent):
        self.total_amount = total_amount
        self.total_items = total_items
        self.discount_percent = discount_percent

    def to_json(self):
        return {
            'success': True,
            'cartTotalAmount': f'{self.total_amount:.2f}',
            'cartTotalItems': self.total_items,
            'discountApplied': self.discount_percent
        }


def _users():
    return get_collection('users')


def _require_user(result):
    if not result.matched_count:
        raise NotFound('User not found')


# ========== CART OPERATIONS ==========

def add_item(user_id, product_id):
    key = 'cartData.' + Cart.key(Cart.parse_product_id(product_id))
    _require_user(_users().update_one({'_id': user_id}, {'$inc': {key: 1}}))


def remove_item(user_id, product_id):
    """Decrement by one, never below zero"""
    key = 'cartData.' + Cart.key(Cart.parse_product_id(product_id))
    _users().update_one({'_id': user_id, key: {'$gt': 0}}, {'$inc': {key: -1}})


def set_quantity(user_id, product_id, quantity):
    product_id = Cart.parse_product_id(product_id)
    try:
        quantity = Cart.parse_quantity(quantity, minimum=1)
    except ValidationError:
        raise InvalidQuantity('Quantity must be at least 1')
    key = 'cartData.' + Cart.key(product_id)
    _require_user(_users().update_one({'_id': user_id}, {'$set': {key: quantity}}))
    return quantity


def apply_promo(user_id, code):
    """Replace the stored discount with the percentage for ``code``"""
    if not isinstance(code, str) or not code.strip():
        raise InvalidPromoCode('Invalid promo code')
    percent = PROMO_CODES.get(code.strip().upper())
    if not percent:
        raise InvalidPromoCode('Invalid promo code')
    _require_user(_users().update_one({'_id': user_id}, {'$set': {'discount': percent}}))
    return percent


def get_cart(user_id):
    user = _users().find_one({'_id': user_id}, {'cartData': 1})
    if not user:
        raise NotFound('User not found')
    return Cart.from_document(user.get('cartData'))


def summarize(user_id):
    """Totals over the products the cart references.

    Ids missing from the catalog contribute nothing. The discount is reported
    but not deducted.
    """
    user = _users().find_one({'_id': user_id}, {'cartData': 1, 'discount': 1})
    if not user:
        raise NotFound('User not found')
    cart = Cart.from_document(user.get('cartData'))

    total_amount = 0.0
    total_items = 0
    if cart.product_ids():
        products = get_collection('products').find(
            {'id': {'$in': cart.product_ids()}}, {'id': 1, 'new_price': 1}
        )
        for product in products:
            quantity = cart.quantity(product['id'])
            total_amount += float(product.get('new_price') or 0) * quantity
            total_items += quantity

    return CartSummary(total_amount, total_items, user.get('discount') or 0)


# ========== CART ROUTES ==========

@cart_bp.route('/addtocart', methods=['POST'])
@token_required
def addtocart():
    add_item(g.current_user['_id'], request_data().get('itemId'))
    return jsonify({'success': True})


@cart_bp.route('/removefromcart', methods=['POST'])
@token_required
def removefromcart():
    remove_item(g.current_user['_id'], request_data().get('itemId'))
    return jsonify({'success': True})


@cart_bp.route('/updatecartquantity', methods=['POST'])
@token_required
def updatecartquantity():
    data = request_data()
    quantity = set_quantity(g.current_user['_id'], data.get('itemId'), data.get('quantity'))
    return jsonify({'success': True, 'quantity': quantity})


@cart_bp.route('/applydiscount', methods=['POST'])
@token_required
def applydiscount():
    percent = apply_promo(g.current_user['_id'], request_data().get('code'))
    current_app.logger.info('Discount %s%% applied for user %s', percent, g.current_user['_id'])
    return jsonify({'success': True, 'discount': percent})


@cart_bp.route('/getcartsummary', methods=['GET'])
@token_required
def getcartsummary():
    return jsonify(summarize(g.current_user['_id']).to_json())


@cart_bp.route('/getcart', methods=['GET', 'POST'])
@token_required
def getcart():
    return jsonify({'success': True, 'cartData': get_cart(g.current_user['_id']).to_document()})
