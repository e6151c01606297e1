import mongomock
import pytest

from dressmart import create_app
from dressmart.extensions import mail, mongo
from dressmart.seed import create_indexes, ensure_admin

ADMIN_EMAIL = 'admin@example.com'
ADMIN_PASSWORD = 'admin-pass'

SHIPPING_INFO = {
    'firstName': 'Ada',
    'lastName': 'Lovelace',
    'email': 'ada@example.com',
    'address': '12 Analytical Way',
    'city': 'London',
    'state': 'Greater London',
    'zipCode': 'N1 9GU',
    'country': 'UK',
    'phone': '+44 20 7946 0000',
}


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'MONGO_URI': 'mongodb://localhost:27017/dressmart_test',
        'JWT_SECRET': 'dressmart-test-secret-0123456789abcdef',
        'PASSWORD_HASH_METHOD': 'pbkdf2:sha256:1000',
        'MAIL_SUPPRESS_SEND': True,
        'ORDER_NOTIFICATIONS': True,
        'UPLOAD_FOLDER': str(tmp_path / 'images'),
    })
    mongo.cx = mongomock.MongoClient()
    mongo.db = mongo.cx['dressmart_test']
    with app.app_context():
        create_indexes()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return mongo.db


@pytest.fixture
def outbox(app):
    with mail.record_messages() as outbox:
        yield outbox


@pytest.fixture
def signup(client):
    def _signup(email='shopper@example.com', password='secret123', name='Shopper'):
        response = client.post('/signup', json={'name': name, 'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['token']
    return _signup


@pytest.fixture
def user_token(signup):
    return signup()


@pytest.fixture
def admin_token(app, client):
    with app.app_context():
        ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD)
    response = client.post('/login', json={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.get_json()['token']


def auth_header(token):
    return {'auth-token': token}


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


def product_payload(**overrides):
    payload = {
        'name': 'Linen Shirt',
        'gender': 'men',
        'category': 'clothing',
        'subcategory': 'shirts',
        'image': 'http://localhost:5000/images/linen.jpg',
        'new_price': 25.5,
    }
    payload.update(overrides)
    return payload


def order_payload(**overrides):
    payload = {
        'items': [
            {'productId': 1, 'name': 'Linen Shirt', 'image': '/images/linen.jpg', 'price': 25.5, 'quantity': 2},
        ],
        'shippingInfo': dict(SHIPPING_INFO),
        'paymentInfo': {'method': 'cash'},
        'totalAmount': 151.0,
    }
    payload.update(overrides)
    return payload
