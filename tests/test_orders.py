import logging

from pymongo.errors import PyMongoError

from conftest import SHIPPING_INFO, auth_header, bearer, order_payload, product_payload
from dressmart import orders
from dressmart.db import get_collection


def place(client, token, **overrides):
    return client.post('/placeorder', json=order_payload(**overrides), headers=bearer(token))


def test_place_order_persists_snapshot_and_clears_cart(client, db, user_token):
    client.post('/addtocart', json={'itemId': 1}, headers=auth_header(user_token))

    response = place(client, user_token)

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['message'] == 'Order placed successfully'
    assert body['cartCleared'] is True

    order = db.orders.find_one()
    assert str(order['_id']) == body['orderId']
    assert order['totalAmount'] == 151.0
    assert order['shippingFee'] == 100.0
    assert order['status'] == 'Processing'
    assert order['paymentInfo'] == {'method': 'cash', 'status': 'Pending'}
    assert order['shippingInfo'] == SHIPPING_INFO
    assert order['items'] == [
        {'productId': 1, 'name': 'Linen Shirt', 'image': '/images/linen.jpg', 'price': 25.5, 'quantity': 2},
    ]

    cart = client.get('/getcart', headers=auth_header(user_token)).get_json()['cartData']
    assert cart == {}
    summary = client.get('/getcartsummary', headers=auth_header(user_token)).get_json()
    assert summary['cartTotalItems'] == 0


def test_order_keeps_snapshot_after_catalog_change(client, user_token):
    client.post('/addproduct', json=product_payload())
    order_id = place(client, user_token).get_json()['orderId']
    client.post('/removeproduct', json={'id': 1})

    order = client.get(f'/orders/{order_id}', headers=bearer(user_token)).get_json()['order']
    assert order['items'][0]['name'] == 'Linen Shirt'
    assert order['items'][0]['price'] == 25.5


def test_empty_items_rejected(client, db, user_token):
    response = place(client, user_token, items=[])

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Order must contain at least one item'
    assert db.orders.count_documents({}) == 0


def test_missing_top_level_fields(client, user_token):
    payload = order_payload()
    del payload['totalAmount']
    response = client.post('/placeorder', json=payload, headers=bearer(user_token))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing required fields'


def test_missing_shipping_field(client, user_token):
    shipping = dict(SHIPPING_INFO, zipCode='')
    response = place(client, user_token, shippingInfo=shipping)

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing shipping field: zipCode'


def test_invalid_line_item(client, user_token):
    items = [{'productId': 1, 'name': 'Linen Shirt', 'image': '/i.jpg', 'price': 25.5, 'quantity': 0}]
    response = place(client, user_token, items=items)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid order item at position 1: quantity'


def test_payment_validation(client, user_token):
    assert place(client, user_token, paymentInfo={'method': 'bitcoin'}).status_code == 400

    response = place(client, user_token, paymentInfo={'method': 'creditCard'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Card information required for credit card payment'

    response = place(client, user_token, paymentInfo={'method': 'creditCard', 'cardLast4': '12a4'})
    assert response.status_code == 400


def test_credit_card_order_keeps_masked_fields(client, db, user_token):
    payment = {'method': 'creditCard', 'cardLast4': '4242', 'cardExpiry': '12/29', 'cardNumber': '4242424242424242'}
    assert place(client, user_token, paymentInfo=payment).status_code == 201

    assert db.orders.find_one()['paymentInfo'] == {
        'method': 'creditCard', 'status': 'Pending', 'cardLast4': '4242', 'cardExpiry': '12/29'}


def test_client_totals_are_trusted_by_default(client, db, user_token):
    assert place(client, user_token, totalAmount='9.99').status_code == 201
    assert db.orders.find_one()['totalAmount'] == 9.99


def test_verified_totals(app, client, user_token):
    app.config['VERIFY_ORDER_TOTALS'] = True
    client.post('/addproduct', json=product_payload(new_price=25.5))

    mismatch = place(client, user_token, totalAmount=10)
    assert mismatch.status_code == 400
    assert mismatch.get_json()['message'] == 'Order total does not match catalog prices'

    unknown = place(client, user_token, items=[
        {'productId': 9, 'name': 'Ghost', 'image': '/g.jpg', 'price': 1, 'quantity': 1}])
    assert unknown.status_code == 400

    assert place(client, user_token, totalAmount=151.0).status_code == 201


def test_order_confirmation_email(client, outbox, user_token):
    order_id = place(client, user_token).get_json()['orderId']

    assert len(outbox) == 1
    assert outbox[0].recipients == ['ada@example.com']
    assert order_id in outbox[0].subject
    assert 'Linen Shirt' in outbox[0].body


def test_no_email_when_notifications_disabled(app, client, outbox, user_token):
    app.config['ORDER_NOTIFICATIONS'] = False
    place(client, user_token)
    assert outbox == []


def test_get_order_for_owner_only(client, signup, user_token):
    order_id = place(client, user_token).get_json()['orderId']
    other_token = signup(email='other@example.com')

    response = client.get(f'/orders/{order_id}', headers=bearer(user_token))
    assert response.status_code == 200
    order = response.get_json()['order']
    assert order['_id'] == order_id
    assert order['status'] == 'Processing'
    assert isinstance(order['user'], str)
    assert isinstance(order['createdAt'], str)

    assert client.get(f'/orders/{order_id}', headers=bearer(other_token)).status_code == 404
    assert client.get('/orders/not-an-id', headers=bearer(user_token)).status_code == 404


def test_order_endpoints_require_token(client):
    assert client.post('/placeorder', json=order_payload()).status_code == 401
    assert client.get('/orders/5f1d7f1e2b3c4d5e6f708192').status_code == 401


def test_numeric_string_quantity_is_accepted(client, db, user_token):
    items = [{'productId': '1', 'name': 'Linen Shirt', 'image': '/i.jpg', 'price': '25.5', 'quantity': '2'}]
    assert place(client, user_token, items=items).status_code == 201

    item = db.orders.find_one()['items'][0]
    assert item['productId'] == 1
    assert item['quantity'] == 2


def test_malformed_quantity_is_rejected(client, user_token):
    for quantity in ('--1', '²', 10 ** 30):
        items = [{'productId': 1, 'name': 'Linen Shirt', 'image': '/i.jpg', 'price': 25.5, 'quantity': quantity}]
        response = place(client, user_token, items=items)
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid order item at position 1: quantity'


class BrokenUpdates:
    """Users collection whose updates fail as if the store went away"""

    def __init__(self, collection):
        self._collection = collection

    def update_one(self, *args, **kwargs):
        raise PyMongoError('connection reset')

    def __getattr__(self, name):
        return getattr(self._collection, name)


def test_order_kept_when_cart_clear_fails(client, db, monkeypatch, caplog, user_token):
    client.post('/addtocart', json={'itemId': 1}, headers=auth_header(user_token))

    def collections(name):
        collection = get_collection(name)
        return BrokenUpdates(collection) if name == 'users' else collection

    monkeypatch.setattr(orders, 'get_collection', collections)
    with caplog.at_level(logging.ERROR):
        response = place(client, user_token)

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['cartCleared'] is False
    assert db.orders.count_documents({}) == 1
    assert db.users.find_one({'email': 'shopper@example.com'})['cartData']['1'] == 1
    assert any(record.levelno == logging.ERROR and 'was not cleared' in record.getMessage()
               for record in caplog.records)
