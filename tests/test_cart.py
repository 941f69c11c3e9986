from decimal import Decimal

from cloudcart.cart import Cart

LAMP = {'id': 1, 'name': 'Lamp', 'price': 10}
MUG = {'id': 2, 'name': 'Mug', 'price': 2.5}


def test_add_merges_quantities():
    cart = Cart()
    cart.add(LAMP)
    cart.add(MUG)
    cart.add(LAMP)
    assert [(item.product_id, item.quantity) for item in cart] == [(1, 2), (2, 1)]
    assert cart.total_items() == 3


def test_add_copies_snapshot():
    product = dict(LAMP)
    cart = Cart()
    cart.add(product)
    product['price'] = 999
    assert cart.get(1).product['price'] == 10


def test_update_quantity_and_remove():
    cart = Cart()
    cart.add(LAMP)
    cart.add(MUG)
    cart.update_quantity(1, 5)
    assert cart.get(1).quantity == 5

    cart.update_quantity(2, 0)
    assert 2 not in cart
    assert len(cart) == 1

    cart.remove(1)
    assert len(cart) == 0


def test_update_unknown_product_is_noop():
    cart = Cart()
    cart.update_quantity(42, 3)
    assert len(cart) == 0


def test_total_price():
    cart = Cart()
    cart.add(LAMP)
    cart.add(LAMP)
    cart.add(MUG)
    assert cart.total_price() == Decimal('22.5')


def test_clear():
    cart = Cart()
    cart.add(LAMP)
    cart.clear()
    assert cart.total_items() == 0
    assert cart.total_price() == 0


def test_local_storage_round_trip_keeps_order():
    cart = Cart()
    cart.add(MUG)
    cart.add(LAMP)
    cart.update_quantity(1, 3)

    restored = Cart.loads(cart.dumps())
    assert [(item.product_id, item.quantity) for item in restored] == [(2, 1), (1, 3)]
    assert restored.get(1).product == LAMP


def test_loads_tolerates_garbage():
    assert len(Cart.loads('')) == 0
    assert len(Cart.loads(None)) == 0
    assert len(Cart.loads('{not json')) == 0
    assert len(Cart.loads('{"id": 1}')) == 0

    cart = Cart.loads('[{"id": 1, "quantity": 2}, {"name": "no id"}, {"id": 3, "quantity": 0}]')
    assert [(item.product_id, item.quantity) for item in cart] == [(1, 2)]


def test_order_payload():
    cart = Cart()
    cart.add(LAMP)
    cart.add(LAMP)
    cart.add(MUG)
    address = {'street': '1 Main', 'city': 'Town', 'state': 'CA', 'zipCode': '90210', 'country': 'US'}
    payload = cart.to_order_payload(address)
    assert payload['items'] == [
        {'product': 1, 'quantity': 2, 'price': 10},
        {'product': 2, 'quantity': 1, 'price': 2.5},
    ]
    assert payload['shippingAddress'] == address
    assert 'shippingAddress' not in cart.to_order_payload()


def test_cart_checkout_against_api(client, user, make_product):
    from conftest import auth

    lamp = make_product('Lamp', price=10)
    mug = make_product('Mug', price=5)
    cart = Cart()
    cart.add(lamp)
    cart.add(lamp)
    cart.add(mug)

    response = client.post('/api/orders', headers=auth(user['token']), json=cart.to_order_payload())
    assert response.status_code == 201
    assert response.get_json()['total'] == float(cart.total_price())
