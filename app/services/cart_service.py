"""Buyer cart: line merging rules plus pluggable persistence.

The cart is owned by one buyer session. ``CartStore`` holds the lines and
writes every change through a storage backend picked by ``CART_STORAGE``.
"""
import logging
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional

from flask import current_app, g, session as flask_session

from app.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    """One product in the cart. Prices are integers in the smallest currency unit."""
    product_id: str
    title: str
    unit_price: int
    quantity: int = 1
    seller_id: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLine':
        return cls(
            product_id=str(data['product_id']),
            title=data.get('title') or '',
            unit_price=int(data.get('unit_price') or 0),
            quantity=int(data['quantity']) if data.get('quantity') is not None else 1,
            seller_id=str(data['seller_id']) if data.get('seller_id') not in (None, '') else None,
            image=data.get('image'),
        )


def _as_int(value, field_name: str) -> int:
    """Whole numbers only; 10.9 is rejected rather than truncated."""
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be an integer')
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f'{field_name} must be an integer')
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be an integer')


def build_cart_line(data: Dict[str, Any]) -> CartLine:
    """Validate an add-to-cart payload."""
    if not data or data.get('product_id') in (None, ''):
        raise ValidationError('product_id is required')
    unit_price = _as_int(data.get('unit_price'), 'unit_price')
    quantity = _as_int(data.get('quantity', 1), 'quantity')
    if unit_price < 0:
        raise ValidationError('unit_price must be >= 0')
    return CartLine.from_dict({**data, 'unit_price': unit_price, 'quantity': quantity})


# =====================================================
# STORAGE BACKENDS
# =====================================================

class MemoryCartStorage:
    """Process-local storage (tests, CLI)."""

    def __init__(self):
        self._carts: Dict[str, List[Dict[str, Any]]] = {}

    def load(self, owner: str) -> List[Dict[str, Any]]:
        return list(self._carts.get(owner, []))

    def save(self, owner: str, lines: List[Dict[str, Any]]) -> None:
        self._carts[owner] = list(lines)

    def clear(self, owner: str) -> None:
        self._carts.pop(owner, None)


class SessionCartStorage:
    """Cart kept in the signed Flask session cookie."""

    SESSION_KEY = 'cart'

    def load(self, owner: str) -> List[Dict[str, Any]]:
        return list(flask_session.get(self.SESSION_KEY, {}).get(owner, []))

    def save(self, owner: str, lines: List[Dict[str, Any]]) -> None:
        carts = dict(flask_session.get(self.SESSION_KEY, {}))
        carts[owner] = lines
        flask_session[self.SESSION_KEY] = carts
        flask_session.modified = True

    def clear(self, owner: str) -> None:
        carts = dict(flask_session.get(self.SESSION_KEY, {}))
        carts.pop(owner, None)
        flask_session[self.SESSION_KEY] = carts
        flask_session.modified = True


class RedisCartStorage:
    """Cart kept in redis so it survives across devices of the same session."""

    MODULE = 'cart'

    def __init__(self, redis_service, ttl: Optional[int] = None):
        self.redis = redis_service
        self.ttl = ttl

    def load(self, owner: str) -> List[Dict[str, Any]]:
        return list(self.redis.get_json(self.MODULE, owner) or [])

    def save(self, owner: str, lines: List[Dict[str, Any]]) -> None:
        if not self.redis.set_json(self.MODULE, owner, lines, self.ttl):
            logger.warning(f"[CART] Could not persist cart for {owner}")

    def clear(self, owner: str) -> None:
        self.redis.delete(self.MODULE, owner)


# =====================================================
# CART STORE
# =====================================================

class CartStore:
    """
    Insertion-ordered cart for one owner.

    - at most one line per product_id (adds merge quantities)
    - quantity <= 0 removes the line, a zero-quantity line is never stored
    """

    def __init__(self, owner: str, storage):
        self.owner = str(owner)
        self.storage = storage
        self._lines: List[CartLine] = [CartLine.from_dict(d) for d in storage.load(self.owner)]

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def seller_id(self) -> Optional[str]:
        """Seller of the first line (carts are assumed single-seller)."""
        return self._lines[0].seller_id if self._lines else None

    def _find(self, product_id) -> int:
        for index, line in enumerate(self._lines):
            if line.product_id == str(product_id):
                return index
        return -1

    def _persist(self) -> None:
        self.storage.save(self.owner, [line.to_dict() for line in self._lines])

    def add(self, line: CartLine, quantity: Optional[int] = None) -> None:
        """Add a product, merging with an existing line for the same product."""
        qty = line.quantity if quantity is None else int(quantity)
        if qty <= 0:
            return
        index = self._find(line.product_id)
        if index >= 0:
            existing = self._lines[index]
            self._lines[index] = replace(existing, quantity=existing.quantity + qty)
        else:
            self._lines.append(replace(line, quantity=qty))
        self._persist()

    def update_quantity(self, product_id, quantity: int) -> None:
        index = self._find(product_id)
        if index < 0:
            return
        if quantity <= 0:
            del self._lines[index]
        else:
            self._lines[index] = replace(self._lines[index], quantity=int(quantity))
        self._persist()

    def remove(self, product_id) -> None:
        index = self._find(product_id)
        if index >= 0:
            del self._lines[index]
            self._persist()

    def clear(self) -> None:
        self._lines = []
        self.storage.clear(self.owner)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [line.to_dict() for line in self._lines],
            'item_count': self.item_count,
            'seller_id': self.seller_id,
        }


_memory_storage = MemoryCartStorage()


def get_cart_storage(app=None):
    """Storage backend configured for the app."""
    app = app or current_app
    backend = app.config.get('CART_STORAGE', 'session')
    if backend == 'redis':
        from app.services.redis_service import get_redis
        redis_service = get_redis()
        if redis_service.is_available():
            return RedisCartStorage(redis_service, app.config.get('CART_TTL'))
        logger.warning("[CART] Redis unavailable, falling back to session storage")
        return SessionCartStorage()
    if backend == 'memory':
        return _memory_storage
    return SessionCartStorage()


def get_cart_store() -> CartStore:
    """Cart of the buyer bound to the current request."""
    return CartStore(g.user_id, get_cart_storage())
