"""Orders blueprint - buyer order list/detail and seller status updates."""
from flask import Blueprint, current_app, g, jsonify, request

from app.database import get_session
from app.middleware import require_login, require_seller
from app.services.order_status_service import (
    advance_seller_order, list_buyer_orders, load_order_detail
)

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


@orders_bp.route('/', methods=['GET'])
@require_login
def list_orders():
    """My orders, newest first."""
    return jsonify({'orders': list_buyer_orders(get_session(), g.user_id)})


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def order_detail(order_id: int):
    """
    Order detail for the buyer.

    Clients re-request this every ``poll_interval_seconds`` while the view
    is open.
    """
    detail = load_order_detail(get_session(), order_id, buyer_id=g.user_id)
    detail['poll_interval_seconds'] = current_app.config.get('ORDER_TRACKER_INTERVAL', 5)
    return jsonify(detail)


@orders_bp.route('/<int:order_id>/seller-status', methods=['POST'])
@require_login
@require_seller
def update_seller_status(order_id: int):
    """Seller moves its items one step: Processing, Shipped (with tracking) or Delivered."""
    data = request.get_json(silent=True) or {}
    detail = advance_seller_order(
        get_session(),
        order_id,
        g.seller_id,
        data.get('status', ''),
        tracking_id=data.get('tracking_id'),
        share_link=data.get('share_link'),
    )
    return jsonify(detail)
