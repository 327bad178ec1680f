"""
Flask CLI commands.

Commands:
- flask init-db: Create database tables
- flask orphan-orders: List orders whose item fan-out failed
- flask track-order: Follow an order's status live in the terminal
"""

import time

import click
from flask import current_app
from app.database import create_all, db_session
from app.exceptions import NotFoundError


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_all()
        click.echo(click.style('Tables created.', fg='green'))

    @app.cli.command('orphan-orders')
    def orphan_orders():
        """List order headers that have no order items."""
        from app.services.order_status_service import find_orphan_orders

        orders = find_orphan_orders(db_session)
        if not orders:
            click.echo('No orphan orders.')
            return

        for order in orders:
            flag = ' [fan-out failed]' if order.items_missing else ''
            click.echo(
                f'#{order.id}  buyer={order.buyer_id}  total={order.total_amount}  '
                f'items={order.item_count}  created={order.created_at}{flag}'
            )
        click.echo(click.style(f'{len(orders)} orphan order(s).', fg='yellow'))

    @app.cli.command('track-order')
    @click.argument('order_id', type=int)
    @click.option('--buyer', default=None, help='Only show the order if it belongs to this buyer')
    @click.option('--interval', type=float, default=None, help='Seconds between refreshes')
    def track_order(order_id, buyer, interval):
        """Print status changes of ORDER_ID until interrupted."""
        from app.services.order_status_service import load_order_detail
        from app.services.order_tracker import OrderTracker, subscribe_status_changes
        from app.services.redis_service import get_redis

        interval = interval or current_app.config.get('ORDER_TRACKER_INTERVAL', 5)
        last_seen = {}

        def fetch():
            try:
                return load_order_detail(db_session, order_id, buyer_id=buyer)
            finally:
                db_session.remove()

        def on_update(detail):
            snapshot = (detail['status'], tuple(i['status'] for i in detail['items']))
            if last_seen.get('snapshot') == snapshot:
                return
            last_seen['snapshot'] = snapshot
            click.echo(f"[{time.strftime('%H:%M:%S')}] #{detail['id']} {detail['title']}: {detail['status']}")
            for item in detail['items']:
                click.echo(f"    - {item['title']} x{item['qty']}: {item['status']}")
            if detail.get('tracking_id'):
                click.echo(f"    tracking: {detail['tracking_id']} {detail.get('tracking_share_link') or ''}")

        def on_error(error):
            if isinstance(error, NotFoundError):
                click.echo(click.style(error.message, fg='red'))
            else:
                click.echo(click.style(f'Refresh failed: {error}', fg='red'))

        tracker = OrderTracker(fetch, on_update, interval=interval, on_error=on_error)
        listener = subscribe_status_changes(get_redis(), order_id, tracker)
        tracker.start()
        try:
            while tracker.running:
                time.sleep(0.5)
        except KeyboardInterrupt:
            pass
        finally:
            tracker.stop()
            if listener is not None:
                listener.stop()
