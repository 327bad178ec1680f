"""
Prometheus metrics blueprint.

GET /metrics exposes request latency plus the checkout counters recorded by
``order_placement_service``. Not authenticated: restrict it at the proxy.
"""
import os
import time

from flask import Blueprint, Response, g, request
from prometheus_client import (
    CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Gauge, Histogram,
    generate_latest, multiprocess
)

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers write to PROMETHEUS_MULTIPROC_DIR and are aggregated on scrape
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# Metric objects register on the default registry; in multiprocess mode the
# collector above reads the per-worker files instead.
_register_on = None if MULTIPROCESS_MODE else registry

http_requests_total = Counter(
    'http_requests_total',
    'HTTP requests by blueprint endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=_register_on
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_register_on,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'HTTP requests currently being served',
    registry=_register_on
)

checkout_attempts_total = Counter(
    'checkout_attempts_total',
    'Checkout attempts by outcome (placed, redirect or error class)',
    ['outcome'],
    registry=_register_on
)

order_fanout_failures_total = Counter(
    'order_fanout_failures_total',
    'Orders whose header was written but whose items failed to save',
    registry=_register_on
)


def setup_metrics_instrumentation(app):
    """Time every request; called once from the app factory."""

    @app.before_request
    def start_request_timer():
        g._metrics_started = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def record_request_metrics(response):
        started = g.pop('_metrics_started', None)
        if started is None:
            return response
        try:
            endpoint = request.endpoint or 'unknown'
            http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started)
            http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        except ValueError as e:
            app.logger.warning(f"[METRICS] Could not record request: {e}")
        finally:
            http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus text exposition."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
