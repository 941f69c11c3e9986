# cloudcart/orders.py
"""
Order lifecycle: creation from a cart payload, role-scoped listing, payment
proof submission and admin status changes.

Status moves are ``pending -> paid -> shipped -> delivered`` with
``cancelled`` reachable from any non-terminal state. Writes are permissive by
default (any known status may be set at any time); set
``ENFORCE_STATUS_TRANSITIONS`` to check moves against ``TRANSITIONS``.
"""
import logging
import os
import time
import uuid
from decimal import Decimal

from flask import current_app
from werkzeug.utils import secure_filename

from .errors import Conflict, Forbidden, NotFound, ValidationError
from .models import db, ADDRESS_FIELDS, MAX_ID, ORDER_STATUSES, Order, OrderItem, Product

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(['delivered', 'cancelled'])

TRANSITIONS = {
    'pending': {'paid', 'cancelled'},
    'paid': {'shipped', 'cancelled'},
    'shipped': {'delivered', 'cancelled'},
    'delivered': set(),
    'cancelled': set(),
}

RECEIPT_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


# Stock policies: called once per line item with the live product row.

def ignore_stock(product, quantity):
    pass


def check_stock(product, quantity):
    if quantity > product.stock:
        raise ValidationError(f'Insufficient stock for {product.name}')


def reserve_stock(product, quantity):
    check_stock(product, quantity)
    product.stock -= quantity


STOCK_POLICIES = {
    'ignore': ignore_stock,
    'check': check_stock,
    'reserve': reserve_stock,
}


def stock_policy():
    policy = current_app.config.get('STOCK_POLICY', 'ignore')
    if callable(policy):
        return policy
    try:
        return STOCK_POLICIES[policy]
    except KeyError:
        raise ValueError(f'Unknown stock policy: {policy!r}')


def _parse_int(value):
    """Accept a JSON integer or digit string in 1..MAX_ID, else None."""
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool):
        return None
    if value < 1 or value > MAX_ID:
        return None
    return value


def _parse_quantity(value):
    quantity = _parse_int(value)
    if quantity is None:
        raise ValidationError('Quantity must be a positive integer')
    return quantity


def _parse_product_id(value):
    if isinstance(value, dict):
        value = value.get('id')
    product_id = _parse_int(value)
    if product_id is None:
        raise ValidationError('Invalid product reference')
    return product_id


def _parse_address(address):
    if address is None:
        return None
    if not isinstance(address, dict):
        raise ValidationError('Shipping address must be an object')
    return {field: address.get(field) for field in ADDRESS_FIELDS}


def create_order(user, items, shipping_address=None):
    """Create a pending order for ``user``.

    Unit prices are read from the catalog now and frozen into the line items,
    so the stored total never follows later price edits.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError('Order must contain at least one item')

    policy = stock_policy()
    address = _parse_address(shipping_address)
    order = Order(user_id=user.id, status='pending', shipping_address=address)
    total = Decimal('0')
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError('Invalid order item')
        product_id = _parse_product_id(raw.get('product'))
        quantity = _parse_quantity(raw.get('quantity'))
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound('Product not found')
        policy(product, quantity)
        price = Decimal(product.price)
        order.items.append(OrderItem(product_id=product.id, quantity=quantity, price=price))
        total += price * quantity

    order.total = total
    db.session.add(order)
    db.session.commit()
    logger.info('Order %s created by user %s, total %s', order.id, user.id, total)
    return order


def list_orders(user):
    query = Order.query.order_by(Order.created_at.desc(), Order.id.desc())
    if not user.is_admin:
        query = query.filter_by(user_id=user.id)
    return query.all()


def get_order(order_id):
    order = db.session.get(Order, order_id) if 0 < order_id <= MAX_ID else None
    if order is None:
        raise NotFound('Order not found')
    return order


def allowed_receipt(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in RECEIPT_EXTENSIONS


def save_receipt(receipt):
    """Store an uploaded receipt and return its path on disk and its public path."""
    safe_name = secure_filename(receipt.filename or '')
    if not allowed_receipt(safe_name):
        raise ValidationError('Only image files allowed')
    if receipt.mimetype and not receipt.mimetype.startswith('image/'):
        raise ValidationError('Only image files allowed')
    ext = '.' + safe_name.rsplit('.', 1)[1].lower()
    filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"
    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, filename)
    receipt.save(path)
    return path, f'/uploads/{filename}'


def submit_payment(user, order_id, receipt=None, transaction_number=None):
    """Attach payment evidence to an order owned by ``user``.

    The status is left alone; an admin advances it after checking the proof.
    """
    order = get_order(order_id)
    if order.user_id != user.id:
        logger.warning('User %s tried to submit payment for order %s', user.id, order.id)
        raise Forbidden('Access denied')

    if transaction_number is not None:
        transaction_number = transaction_number.strip() or None
    has_receipt = receipt is not None and bool(receipt.filename)
    if not has_receipt and transaction_number is None:
        raise ValidationError('A receipt image or transaction number is required')

    saved_path = None
    if has_receipt:
        saved_path, order.payment_proof = save_receipt(receipt)
    if transaction_number is not None:
        order.transaction_number = transaction_number
    try:
        db.session.commit()
    except Exception:
        if saved_path is not None and os.path.exists(saved_path):
            os.remove(saved_path)
        raise
    logger.info('Payment proof submitted for order %s', order.id)
    return order


def update_status(order_id, status):
    order = get_order(order_id)
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
    if current_app.config.get('ENFORCE_STATUS_TRANSITIONS'):
        if status != order.status and status not in TRANSITIONS[order.status]:
            raise Conflict(f'Cannot move order from {order.status} to {status}')
    previous = order.status
    order.status = status
    db.session.commit()
    logger.info('Order %s status %s -> %s', order.id, previous, status)
    return order
