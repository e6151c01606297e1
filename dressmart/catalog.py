import json
import math
from functools import wraps

from flask import Blueprint, current_app, jsonify
from pymongo.errors import DuplicateKeyError

from .auth import require_admin
from .db import get_collection, next_sequence, to_object_id
from .errors import ApiError, NotFound, ValidationError
from .models import DEFAULT_COLORS, DEFAULT_SIZES, GENDERS, INT64_MAX, Product, parse_int
from .web import request_data

catalog_bp = Blueprint('catalog', __name__)

REQUIRED_PRODUCT_FIELDS = ('name', 'category', 'subcategory', 'image', 'new_price', 'gender')


def catalog_write(f):
    """Gate catalog mutations behind the admin role when configured to"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config['CATALOG_WRITE_REQUIRES_ADMIN']:
            require_admin()
        return f(*args, **kwargs)
    return decorated_function


def parse_list_field(value, default):
    """Normalise colours or sizes into a non-empty list of strings.

    Accepts a list, a JSON-encoded list or scalar, or a bare value. A string
    that is not valid JSON becomes a one-element list of itself.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return list(default)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            parsed = [value]
        if not isinstance(parsed, list):
            parsed = [parsed]
        value = parsed
    elif not isinstance(value, (list, tuple)):
        value = [value]

    items = [str(item).strip() for item in value if item is not None and str(item).strip()]
    return items or list(default)


def parse_number(data, field, required=False, integer=False):
    value = data.get(field)
    if value is None or value == '':
        if required:
            raise ValidationError(f'Missing required fields: {field}')
        return None
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {field} value')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field} value')
    if not math.isfinite(number) or number < 0:
        raise ValidationError(f'Invalid {field} value')
    if integer:
        if not number.is_integer() or number > INT64_MAX:
            raise ValidationError(f'Invalid {field} value')
        return int(number)
    return number


def parse_bool(value, default=True):
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ('true', '1', 'yes', 'on'):
        return True
    if text in ('false', '0', 'no', 'off'):
        return False
    raise ValidationError('Invalid available value')


def validate_product(data):
    missing = [field for field in REQUIRED_PRODUCT_FIELDS
               if data.get(field) is None or (isinstance(data.get(field), str) and not data.get(field).strip())]
    if missing:
        raise ValidationError('Missing required fields: ' + ', '.join(missing))

    gender = str(data['gender']).strip().lower()
    if gender not in GENDERS:
        raise ValidationError('Invalid gender value. Allowed values are men, women, kids.')

    return {
        'name': str(data['name']).strip(),
        'gender': gender,
        'category': str(data['category']).strip(),
        'subcategory': str(data['subcategory']).strip(),
        'image': str(data['image']).strip(),
        'new_price': parse_number(data, 'new_price', required=True),
        # zero is treated as "no previous price"
        'old_price': parse_number(data, 'old_price') or None,
        'stock': parse_number(data, 'stock', integer=True) or 0,
        'colors': parse_list_field(data.get('colors'), DEFAULT_COLORS),
        'sizes': parse_list_field(data.get('sizes'), DEFAULT_SIZES),
        'available': parse_bool(data.get('available'))
    }


def max_product_id():
    latest = get_collection('products').find_one({}, sort=[('id', -1)])
    return int(latest['id']) if latest and latest.get('id') is not None else 0


def next_product_id():
    return next_sequence('product_id', seed=max_product_id)


# ========== CATALOG OPERATIONS ==========

def add_product(data):
    fields = validate_product(data)
    product = Product.create(next_product_id(), fields)
    try:
        get_collection('products').insert_one(product)
    except DuplicateKeyError:
        current_app.logger.error('Product id %s already taken', product['id'])
        raise ApiError('Failed to add product')
    current_app.logger.info('Product %s added: %s', product['id'], product['name'])
    return product


def list_products():
    return list(get_collection('products').find({}).sort('_id', 1))


def parse_numeric_id(key):
    """Non-negative product id, or None"""
    product_id = parse_int(key)
    return product_id if product_id is not None and product_id >= 0 else None


def get_product(key):
    """Find a product by its storage key or its numeric id"""
    clauses = []
    object_id = to_object_id(key) if isinstance(key, str) and len(key) == 24 else None
    if object_id:
        clauses.append({'_id': object_id})
    numeric_id = parse_numeric_id(key)
    if numeric_id is not None:
        clauses.append({'id': numeric_id})
    if not clauses:
        raise NotFound('Product not found')

    query = clauses[0] if len(clauses) == 1 else {'$or': clauses}
    product = get_collection('products').find_one(query)
    if not product:
        raise NotFound('Product not found')
    return product


def remove_product(product_id):
    """Delete by numeric id. Returns whether anything was deleted."""
    numeric_id = parse_numeric_id(product_id)
    if numeric_id is None:
        raise ValidationError('Invalid product id')
    result = get_collection('products').delete_one({'id': numeric_id})
    if result.deleted_count:
        current_app.logger.info('Product %s removed', numeric_id)
    else:
        current_app.logger.warning('Remove requested for unknown product %s', numeric_id)
    return bool(result.deleted_count)


# ========== CATALOG ROUTES ==========

@catalog_bp.route('/addproduct', methods=['POST'])
@catalog_write
def addproduct():
    product = add_product(request_data())
    return jsonify({'success': True, 'product': Product.to_json(product)})


@catalog_bp.route('/allproducts', methods=['GET'])
def allproducts():
    return jsonify([Product.to_json(product) for product in list_products()])


@catalog_bp.route('/product/<key>', methods=['GET'])
def product_details(key):
    return jsonify({'success': True, 'product': Product.to_json(get_product(key))})


@catalog_bp.route('/removeproduct', methods=['POST'])
@catalog_write
def removeproduct():
    deleted = remove_product(request_data().get('id'))
    return jsonify({'success': True, 'deleted': deleted})
