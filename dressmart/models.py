import re
from datetime import datetime, timezone

from .db import serialize_doc
from .errors import ValidationError

GENDERS = ('men', 'women', 'kids')
ROLES = ('user', 'admin')
ORDER_STATUSES = ('Processing', 'Shipped', 'Delivered', 'Cancelled')
PAYMENT_METHODS = ('creditCard', 'cash')
SHIPPING_FIELDS = (
    'firstName', 'lastName', 'email', 'address', 'city',
    'state', 'zipCode', 'country', 'phone'
)
DEFAULT_COLORS = ['Black']
DEFAULT_SIZES = ['M']

# BSON stores integers as at most 8 bytes
INT64_MAX = 2 ** 63 - 1

_INTEGER = re.compile(r'-?\d+', re.ASCII)


def utcnow():
    return datetime.now(timezone.utc)


def parse_int(value):
    """Whole number from an int, an integral float or a digit string; None otherwise"""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        value = int(value.strip())
    if not isinstance(value, int) or abs(value) > INT64_MAX:
        return None
    return value


class User:
    @staticmethod
    def create(email, password_hash, name=None, roles=None, cart=None):
        return {
            'name': name,
            'email': email,
            'password': password_hash,
            'cartData': cart if cart is not None else {},
            'discount': 0,
            'roles': list(roles or ['user']),
            'isActive': True,
            'date': utcnow()
        }

    @staticmethod
    def is_active(user):
        return user.get('isActive') is not False

    @staticmethod
    def listing(user):
        """Admin listing entry; never carries the password hash or cart"""
        return serialize_doc({
            '_id': str(user['_id']),
            'name': user.get('name'),
            'email': user.get('email'),
            'roles': user.get('roles') or ['user'],
            'isActive': User.is_active(user),
            'createdAt': user.get('date')
        })

    @staticmethod
    def account(user):
        return serialize_doc({
            '_id': str(user['_id']),
            'name': user.get('name'),
            'email': user.get('email'),
            'roles': user.get('roles') or ['user'],
            'isActive': User.is_active(user),
            'date': user.get('date')
        })


class Product:
    @staticmethod
    def create(product_id, data):
        return {
            'id': product_id,
            'name': data['name'],
            'gender': data['gender'],
            'category': data['category'],
            'subcategory': data['subcategory'],
            'image': data['image'],
            'new_price': data['new_price'],
            'old_price': data.get('old_price'),
            'stock': data.get('stock', 0),
            'colors': data.get('colors') or list(DEFAULT_COLORS),
            'sizes': data.get('sizes') or list(DEFAULT_SIZES),
            'date': utcnow(),
            'available': data.get('available', True)
        }

    @staticmethod
    def to_json(product):
        """Complete product record, filling defaults for fields older documents lack"""
        return serialize_doc({
            'id': product.get('id'),
            'name': product.get('name'),
            'gender': product.get('gender'),
            'category': product.get('category'),
            'subcategory': product.get('subcategory'),
            'image': product.get('image'),
            'new_price': product.get('new_price'),
            'old_price': product.get('old_price') or None,
            'stock': product.get('stock') or 0,
            'colors': product.get('colors') or list(DEFAULT_COLORS),
            'sizes': product.get('sizes') or list(DEFAULT_SIZES),
            'date': product.get('date'),
            'available': product.get('available', True) is not False,
            '_id': str(product['_id']) if product.get('_id') is not None else None
        })


class Cart:
    """Per-user quantities keyed by numeric product id.

    Stored documents key the map by the id's string form. Entries read back
    from storage are re-validated and anything malformed is dropped.
    """

    def __init__(self):
        self._quantities = {}

    @staticmethod
    def parse_product_id(value):
        product_id = parse_int(value)
        if product_id is None or product_id < 0:
            raise ValidationError('Invalid product id')
        return product_id

    @staticmethod
    def parse_quantity(value, minimum=1):
        quantity = parse_int(value)
        if quantity is None or quantity < minimum:
            raise ValidationError('Invalid quantity')
        return quantity

    @staticmethod
    def key(product_id):
        return str(product_id)

    @classmethod
    def from_document(cls, raw):
        cart = cls()
        for product_id, quantity in (raw or {}).items():
            try:
                cart._quantities[cls.parse_product_id(product_id)] = cls.parse_quantity(quantity, minimum=0)
            except ValidationError:
                continue
        return cart

    @staticmethod
    def empty_slots(count):
        return {Cart.key(i): 0 for i in range(count)}

    def quantity(self, product_id):
        return self._quantities.get(product_id, 0)

    def items(self):
        """(product id, quantity) pairs with a positive quantity"""
        return [(pid, qty) for pid, qty in sorted(self._quantities.items()) if qty > 0]

    def product_ids(self):
        return [pid for pid, _ in self.items()]

    def to_document(self):
        return {self.key(pid): qty for pid, qty in self._quantities.items()}


class Order:
    @staticmethod
    def create(user_id, items, shipping_info, payment_info, total_amount, shipping_fee):
        now = utcnow()
        return {
            'user': user_id,
            'items': items,
            'shippingInfo': shipping_info,
            'paymentInfo': payment_info,
            'totalAmount': total_amount,
            'shippingFee': shipping_fee,
            'status': 'Processing',
            'statusHistory': [{'status': 'Processing', 'timestamp': now, 'updatedBy': None}],
            'orderDate': now,
            'createdAt': now,
            'updatedAt': now
        }

    @staticmethod
    def user_summary(user):
        if not user:
            return None
        return {'_id': str(user['_id']), 'name': user.get('name'), 'email': user.get('email')}
