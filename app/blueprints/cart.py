"""Cart blueprint - buyer cart JSON API."""
from typing import Any, Dict, Tuple

from flask import Blueprint, jsonify, request

from app.exceptions import ValidationError
from app.middleware import require_login
from app.services.cart_service import build_cart_line, get_cart_store
from app.services.pricing_service import calculate_pricing

cart_bp = Blueprint('cart', __name__, url_prefix='/cart')


def _cart_payload(cart) -> Dict[str, Any]:
    data = cart.to_dict()
    data['pricing'] = calculate_pricing(cart.lines).to_dict()
    return data


@cart_bp.route('/', methods=['GET'])
@require_login
def view_cart():
    """Cart lines with a voucher-less price breakdown."""
    return jsonify(_cart_payload(get_cart_store()))


@cart_bp.route('/items', methods=['POST'])
@require_login
def add_item() -> Tuple[Any, int]:
    """Add a product (merged by product_id)."""
    line = build_cart_line(request.get_json(silent=True) or {})
    cart = get_cart_store()
    cart.add(line)
    return jsonify(_cart_payload(cart)), 201


@cart_bp.route('/items/<product_id>', methods=['PATCH'])
@require_login
def update_item(product_id: str):
    """Set quantity; zero or less removes the line."""
    data = request.get_json(silent=True) or {}
    try:
        quantity = int(data.get('quantity'))
    except (TypeError, ValueError):
        raise ValidationError('quantity must be an integer')
    cart = get_cart_store()
    cart.update_quantity(product_id, quantity)
    return jsonify(_cart_payload(cart))


@cart_bp.route('/items/<product_id>', methods=['DELETE'])
@require_login
def remove_item(product_id: str):
    cart = get_cart_store()
    cart.remove(product_id)
    return jsonify(_cart_payload(cart))


@cart_bp.route('/', methods=['DELETE'])
@require_login
def clear_cart():
    cart = get_cart_store()
    cart.clear()
    return jsonify(_cart_payload(cart))
