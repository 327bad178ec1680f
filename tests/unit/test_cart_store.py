"""
Unit tests for the buyer cart.
"""

import pytest

from app.exceptions import ValidationError
from app.services.cart_service import (
    CartLine, CartStore, MemoryCartStorage, RedisCartStorage, build_cart_line, get_cart_storage,
    SessionCartStorage
)


class TestCartStore:

    def test_add_merges_same_product(self, empty_cart, line_factory):
        empty_cart.add(line_factory('p-1', quantity=1))
        empty_cart.add(line_factory('p-1', quantity=2))

        assert len(empty_cart.lines) == 1
        assert empty_cart.lines[0].quantity == 3

    def test_insertion_order(self, empty_cart, line_factory):
        empty_cart.add(line_factory('b'))
        empty_cart.add(line_factory('a'))
        empty_cart.add(line_factory('b'))

        assert [line.product_id for line in empty_cart.lines] == ['b', 'a']

    def test_add_zero_quantity_is_ignored(self, empty_cart, line_factory):
        empty_cart.add(line_factory('p-1'), quantity=0)
        assert empty_cart.is_empty()

    def test_update_quantity(self, cart):
        cart.update_quantity('p-1', 5)
        assert cart.lines[0].quantity == 5
        assert cart.item_count == 5

    @pytest.mark.parametrize('quantity', [0, -1])
    def test_update_to_zero_or_less_removes(self, cart, quantity):
        cart.update_quantity('p-1', quantity)
        assert cart.is_empty()

    def test_update_unknown_product_is_noop(self, cart):
        cart.update_quantity('missing', 3)
        assert cart.item_count == 2

    def test_remove_and_clear(self, cart, line_factory):
        cart.add(line_factory('p-2', quantity=1))
        cart.remove('p-1')
        assert [line.product_id for line in cart.lines] == ['p-2']

        cart.clear()
        assert cart.is_empty()
        assert cart.seller_id is None

    def test_seller_is_first_line_seller(self, empty_cart, line_factory):
        empty_cart.add(line_factory('p-1', seller_id='seller-2'))
        empty_cart.add(line_factory('p-2', seller_id='seller-1'))
        assert empty_cart.seller_id == 'seller-2'

    def test_changes_survive_reload(self, line_factory):
        storage = MemoryCartStorage()
        CartStore('buyer-1', storage).add(line_factory('p-1', quantity=4))

        reloaded = CartStore('buyer-1', storage)
        assert reloaded.lines == [line_factory('p-1', quantity=4)]
        assert CartStore('buyer-2', storage).is_empty()

    def test_lines_is_a_copy(self, cart):
        cart.lines.clear()
        assert not cart.is_empty()


class TestBuildCartLine:

    def test_valid_payload(self):
        line = build_cart_line({'product_id': 7, 'title': 'Sofa', 'unit_price': '15000', 'seller_id': 3})
        assert line == CartLine(product_id='7', title='Sofa', unit_price=15000, quantity=1, seller_id='3')

    def test_missing_product(self):
        with pytest.raises(ValidationError):
            build_cart_line({'unit_price': 100})

    def test_non_integer_price(self):
        with pytest.raises(ValidationError):
            build_cart_line({'product_id': 'p', 'unit_price': 'abc'})

    def test_zero_quantity_is_kept_as_zero(self, empty_cart):
        line = build_cart_line({'product_id': 'p-1', 'unit_price': 100, 'quantity': 0})
        assert line.quantity == 0

        empty_cart.add(line)
        assert empty_cart.is_empty()

    def test_missing_quantity_defaults_to_one(self):
        assert CartLine.from_dict({'product_id': 'p-1', 'unit_price': 100}).quantity == 1

    @pytest.mark.parametrize('payload', [
        {'product_id': 'p', 'unit_price': 10.9},
        {'product_id': 'p', 'unit_price': 100, 'quantity': 1.5},
        {'product_id': 'p', 'unit_price': True},
        {'product_id': 'p', 'unit_price': '10.9'},
    ])
    def test_fractional_numbers_rejected(self, payload):
        with pytest.raises(ValidationError):
            build_cart_line(payload)

    def test_whole_float_accepted(self):
        assert build_cart_line({'product_id': 'p', 'unit_price': 10.0}).unit_price == 10

    def test_negative_price(self):
        with pytest.raises(ValidationError):
            build_cart_line({'product_id': 'p', 'unit_price': -1})


class FakeRedis:
    def __init__(self, available=True):
        self.available = available
        self.data = {}

    def is_available(self):
        return self.available

    def get_json(self, module, key):
        return self.data.get((module, key))

    def set_json(self, module, key, value, ttl=None):
        self.data[(module, key)] = value
        return True

    def delete(self, module, key):
        self.data.pop((module, key), None)
        return True


class TestStorageBackends:

    def test_redis_storage(self, line_factory):
        redis_service = FakeRedis()
        cart = CartStore('buyer-1', RedisCartStorage(redis_service, ttl=60))
        cart.add(line_factory('p-1', quantity=1))

        assert redis_service.data[('cart', 'buyer-1')][0]['product_id'] == 'p-1'
        cart.clear()
        assert ('cart', 'buyer-1') not in redis_service.data

    def test_session_storage(self, app, line_factory):
        with app.test_request_context('/'):
            cart = CartStore('buyer-1', SessionCartStorage())
            cart.add(line_factory('p-1', quantity=2))

            assert CartStore('buyer-1', SessionCartStorage()).item_count == 2

    def test_redis_backend_falls_back_to_session(self, app, monkeypatch):
        from app.services import redis_service as redis_module

        monkeypatch.setitem(app.config, 'CART_STORAGE', 'redis')
        monkeypatch.setattr(redis_module, '_redis_service', FakeRedis(available=False))

        assert isinstance(get_cart_storage(app), SessionCartStorage)

    def test_memory_backend(self, app, monkeypatch):
        monkeypatch.setitem(app.config, 'CART_STORAGE', 'memory')
        assert isinstance(get_cart_storage(app), MemoryCartStorage)
