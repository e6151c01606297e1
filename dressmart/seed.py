"""Indexes, the product id counter, the first admin and sample products."""
import os

from flask import current_app
from pymongo import ASCENDING, DESCENDING

from .catalog import add_product, max_product_id
from .db import get_collection
from .models import User
from .security import hash_password, normalize_email

SAMPLE_PRODUCTS = [
    {
        'name': 'Floral Summer Dress',
        'gender': 'women',
        'category': 'clothing',
        'subcategory': 'dresses',
        'image': '/images/sample_floral_dress.jpg',
        'new_price': 49.99,
        'old_price': 69.99,
        'stock': 30,
        'colors': ['Red', 'Blue'],
        'sizes': ['S', 'M', 'L'],
    },
    {
        'name': "Men's Slim Fit Shirt",
        'gender': 'men',
        'category': 'clothing',
        'subcategory': 'shirts',
        'image': '/images/sample_slim_shirt.jpg',
        'new_price': 29.5,
        'stock': 40,
        'colors': ['White', 'Black'],
        'sizes': ['M', 'L', 'XL'],
    },
    {
        'name': 'Kids Denim Jacket',
        'gender': 'kids',
        'category': 'clothing',
        'subcategory': 'jackets',
        'image': '/images/sample_denim_jacket.jpg',
        'new_price': 35.0,
        'old_price': 42.0,
        'stock': 15,
        'colors': ['Blue'],
        'sizes': ['S', 'M'],
    },
]


def create_indexes():
    get_collection('users').create_index('email', unique=True)
    get_collection('products').create_index('id', unique=True)
    orders = get_collection('orders')
    orders.create_index('user')
    orders.create_index('status')
    orders.create_index([('createdAt', DESCENDING)])
    orders.create_index([('user', ASCENDING), ('createdAt', DESCENDING)])


def seed_product_counter():
    """Make the product id counter at least the highest id in the catalog"""
    counters = get_collection('counters')
    highest = max_product_id()
    counter = counters.find_one({'_id': 'product_id'})
    if counter is None:
        counters.insert_one({'_id': 'product_id', 'seq': highest})
    elif counter.get('seq', 0) < highest:
        counters.update_one({'_id': 'product_id'}, {'$set': {'seq': highest}})
    return max(highest, (counter or {}).get('seq', 0))


def ensure_admin(email=None, password=None):
    """Create the admin account if missing. Returns True when one was created."""
    email = normalize_email(email or os.getenv('ADMIN_EMAIL', 'admin@dressmart.local'))
    password = password or os.getenv('ADMIN_PASSWORD', 'admin123')

    users = get_collection('users')
    existing = users.find_one({'email': email})
    if existing:
        if 'admin' not in (existing.get('roles') or []):
            users.update_one({'_id': existing['_id']}, {'$addToSet': {'roles': 'admin'}})
            current_app.logger.info('Granted admin role to %s', email)
        return False

    users.insert_one(User.create(email, hash_password(password), name='Administrator', roles=['admin']))
    current_app.logger.info('Admin user %s created', email)
    return True


def seed_sample_products():
    if get_collection('products').count_documents({}) > 0:
        return 0
    for product in SAMPLE_PRODUCTS:
        add_product(dict(product))
    return len(SAMPLE_PRODUCTS)


def setup_database(with_samples=True):
    """Run every setup step; safe to repeat"""
    create_indexes()
    seed_product_counter()
    admin_created = ensure_admin()
    products_added = seed_sample_products() if with_samples else 0
    return {'admin_created': admin_created, 'products_added': products_added}
