"""Checkout blueprint - vouchers, price quote and order placement."""
from typing import Any, Tuple

from flask import Blueprint, current_app, g, jsonify, request

from app.database import get_session
from app.middleware import require_login
from app.services.cart_service import get_cart_store
from app.services.checkout_service import BuyerSnapshot
from app.services.order_placement_service import place_order
from app.services.payment_gateway_client import PaymentGatewayClient
from app.services.pricing_service import calculate_pricing
from app.services.voucher_service import get_eligible_vouchers, select_voucher, serialize_voucher

checkout_bp = Blueprint('checkout', __name__, url_prefix='/checkout')


@checkout_bp.route('/vouchers', methods=['GET'])
@require_login
def list_vouchers():
    """Vouchers usable with the current cart."""
    cart = get_cart_store()
    vouchers = get_eligible_vouchers(get_session(), cart.seller_id)
    return jsonify({'vouchers': [serialize_voucher(v) for v in vouchers]})


@checkout_bp.route('/quote', methods=['GET'])
@require_login
def quote():
    """Price breakdown for the cart with the optional ``voucher_id``."""
    cart = get_cart_store()
    eligible = get_eligible_vouchers(get_session(), cart.seller_id)
    voucher = select_voucher(eligible, request.args.get('voucher_id'))
    pricing = calculate_pricing(cart.lines, voucher)
    return jsonify({
        'pricing': pricing.to_dict(),
        'voucher_id': voucher.id if voucher is not None else None,
    })


@checkout_bp.route('/', methods=['POST'])
@require_login
def submit_order() -> Tuple[Any, int]:
    """
    Place the order for the current cart.

    Body: buyer_name, buyer_address, payment_method ('cod'|'online'), voucher_id.
    For online payment the response carries ``checkout_url``; the client
    opens it.
    """
    data = request.get_json(silent=True) or {}
    buyer = BuyerSnapshot(
        buyer_id=g.user_id,
        name=data.get('buyer_name'),
        address=data.get('buyer_address'),
    )

    attempt, outcome = place_order(
        get_session(),
        get_cart_store(),
        buyer,
        data.get('payment_method'),
        gateway=PaymentGatewayClient.from_config(),
        voucher_id=data.get('voucher_id'),
        continue_on_fanout_failure=current_app.config.get('CHECKOUT_CONTINUE_ON_FANOUT_FAILURE', True),
    )

    body = outcome.to_dict()
    body['pricing'] = attempt.pricing.to_dict()
    return jsonify(body), 201
