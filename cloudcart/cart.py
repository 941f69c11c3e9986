# cloudcart/cart.py
"""
Client-side shopping cart.

The cart is never stored on the server: it lives in the client's local
storage as a JSON list of product snapshots, each carrying a ``quantity``.
Prices in the snapshots are informational only; the server re-reads the
catalog when the order is created.
"""
import json
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class CartItem:
    product: dict
    quantity: int = 1

    @property
    def product_id(self):
        return self.product['id']

    @property
    def subtotal(self):
        return Decimal(str(self.product.get('price', 0))) * self.quantity


class Cart:
    def __init__(self):
        # dicts keep insertion order, which is the display order
        self._items = {}

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    def __contains__(self, product_id):
        return product_id in self._items

    def get(self, product_id):
        return self._items.get(product_id)

    def add(self, product):
        """Add one unit of ``product``, merging with an existing line."""
        existing = self._items.get(product['id'])
        if existing:
            existing.quantity += 1
        else:
            self._items[product['id']] = CartItem(dict(product), 1)
        return self._items[product['id']]

    def remove(self, product_id):
        self._items.pop(product_id, None)

    def update_quantity(self, product_id, quantity):
        if quantity <= 0:
            self.remove(product_id)
        elif product_id in self._items:
            self._items[product_id].quantity = quantity

    def clear(self):
        self._items.clear()

    def total_price(self):
        return sum((item.subtotal for item in self), Decimal('0'))

    def total_items(self):
        return sum(item.quantity for item in self)

    def dumps(self):
        return json.dumps([dict(item.product, quantity=item.quantity) for item in self])

    @classmethod
    def loads(cls, text):
        """Rebuild a cart from its local-storage form; bad input gives an empty cart."""
        cart = cls()
        try:
            entries = json.loads(text) if text else []
        except (TypeError, ValueError):
            return cart
        if not isinstance(entries, list):
            return cart
        for entry in entries:
            if not isinstance(entry, dict) or 'id' not in entry:
                continue
            quantity = entry.get('quantity', 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                continue
            product = {k: v for k, v in entry.items() if k != 'quantity'}
            cart._items[product['id']] = CartItem(product, quantity)
        return cart

    def to_order_payload(self, shipping_address=None):
        payload = {
            'items': [
                {'product': item.product_id, 'quantity': item.quantity,
                 'price': item.product.get('price')}
                for item in self
            ],
        }
        if shipping_address is not None:
            payload['shippingAddress'] = shipping_address
        return payload
