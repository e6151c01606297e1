"""Order e-mails. Delivery is best-effort: a failure is logged and never
propagates to the request that triggered it."""
from flask import current_app
from flask_mail import Message
from markupsafe import escape

from .extensions import mail


def mail_enabled():
    config = current_app.config
    if not config.get('ORDER_NOTIFICATIONS'):
        return False
    if config.get('MAIL_SUPPRESS_SEND'):
        return True
    return bool(config.get('MAIL_USERNAME') and config.get('MAIL_PASSWORD'))


def send_email(to, subject, body, html=None):
    if not to:
        return False
    if not mail_enabled():
        current_app.logger.debug('Mail not configured, skipping "%s" to %s', subject, to)
        return False

    try:
        mail.send(Message(subject=subject, recipients=[to], body=body, html=html))
    except Exception as e:
        current_app.logger.warning('Failed to send "%s" to %s: %s', subject, to, e)
        return False
    return True


def _format_amount(amount):
    try:
        return f'{float(amount):,.2f}'
    except (TypeError, ValueError):
        return str(amount)


def send_order_confirmation(order):
    shipping = order.get('shippingInfo', {})
    order_id = str(order['_id'])
    lines = [f"  {item['quantity']} x {item['name']} @ {_format_amount(item['price'])}"
             for item in order.get('items', [])]
    body = '\n'.join([
        f"Hello {shipping.get('firstName', 'Customer')},",
        '',
        f'Thank you for your order {order_id}.',
        '',
        *lines,
        '',
        f"Shipping: {_format_amount(order.get('shippingFee'))}",
        f"Total: {_format_amount(order.get('totalAmount'))}",
        f"Payment: {order.get('paymentInfo', {}).get('method')}",
        '',
        'We will let you know when it ships.',
    ])
    return send_email(shipping.get('email'), f'Order {order_id} confirmed', body)


def send_status_update(order, user=None):
    order_id = str(order['_id'])
    shipping = order.get('shippingInfo', {})
    recipient = (user or {}).get('email') or shipping.get('email')
    name = (user or {}).get('name') or shipping.get('firstName') or 'Customer'
    body = (
        f'Hi {name},\n\n'
        f"Your order {order_id} is now {order['status']}.\n"
        f"Items: {len(order.get('items', []))}\n"
        f"Total: {_format_amount(order.get('totalAmount'))}\n"
    )
    html = (
        '<h2>Order Status Update</h2>'
        f"<p>Hi {escape(name)},</p>"
        f'<p>Your order <strong>{order_id}</strong> status has been updated to:</p>'
        f"<h3>{order['status']}</h3>"
    )
    return send_email(recipient, f"Order {order_id} Status Update - {order['status']}", body, html=html)
