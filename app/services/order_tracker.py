"""
Live refresh for an open order-detail view.

The tracker re-fetches the order every ``interval`` seconds. A redis pub/sub
subscription can wake it early when a seller changes the status; the poll
keeps running underneath so a missed message only delays the update.
"""
import json
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0


class OrderTracker:
    """Polling loop bound to one view instance."""

    def __init__(
        self,
        fetch: Callable[[], Any],
        on_update: Callable[[Any], None],
        interval: float = DEFAULT_INTERVAL,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        self.fetch = fetch
        self.on_update = on_update
        self.interval = interval
        self.on_error = on_error
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._wake_event: Optional[threading.Event] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> 'OrderTracker':
        """Fetch now and then on every tick. No-op if already running."""
        with self._lock:
            if self.running and not self._stop_event.is_set():
                return self
            self._join_previous()
            self._stop_event = threading.Event()
            self._wake_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event, self._wake_event),
                name='order-tracker',
                daemon=True,
            )
            self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the loop; returns once it has exited (unless called from the loop itself)."""
        with self._lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._wake_event.set()
            self._join_previous(timeout)

    def refresh_now(self) -> None:
        """Skip the rest of the current wait."""
        wake = self._wake_event
        if wake is not None:
            wake.set()

    def _join_previous(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop_event: threading.Event, wake_event: threading.Event) -> None:
        while not stop_event.is_set():
            self._tick(stop_event)
            wake_event.wait(self.interval)
            wake_event.clear()

    def _tick(self, stop_event: threading.Event) -> None:
        try:
            snapshot = self.fetch()
            # A view closed mid-fetch must not receive the result
            if not stop_event.is_set():
                self.on_update(snapshot)
        except Exception as e:
            logger.warning(f"[TRACKER] Refresh failed: {e}")
            self._report(e, stop_event)

    def _report(self, error: Exception, stop_event: threading.Event) -> None:
        if self.on_error is None or stop_event.is_set():
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("[TRACKER] Error handler raised")

    def __enter__(self) -> 'OrderTracker':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def subscribe_status_changes(redis_service, order_id, tracker: OrderTracker):
    """
    Wire the order's status channel to ``tracker.refresh_now``.

    Returns the redis worker thread (call ``.stop()`` when the view closes),
    or None when redis is unavailable and the tracker polls alone.
    """
    if redis_service is None or not redis_service.is_available():
        return None

    def _handler(message):
        try:
            payload = json.loads(message.get('data') or '{}')
        except (TypeError, ValueError):
            payload = {}
        logger.debug(f"[TRACKER] Status change for order #{order_id}: {payload.get('status')}")
        tracker.refresh_now()

    pubsub = redis_service.client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe(**{redis_service.status_channel(order_id): _handler})
    return pubsub.run_in_thread(sleep_time=0.5, daemon=True)
