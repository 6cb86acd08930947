"""
In-process fan-out towards the real-time channel (websocket gateway, queue
publisher, ...). Listeners run on a small thread pool so a slow or broken
consumer never holds up the request that produced the event.
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict], None]

_listeners: List[Listener] = []
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="order-events")


def subscribe(listener: Listener) -> Listener:
    _listeners.append(listener)
    return listener


def unsubscribe(listener: Listener):
    if listener in _listeners:
        _listeners.remove(listener)


def _deliver(listener: Listener, event: str, payload: dict):
    try:
        listener(event, payload)
    except Exception:
        logger.exception(f"Delivery of {event} to {listener!r} failed")


def publish(event: str, payload: dict) -> List[Future]:
    return [
        _executor.submit(_deliver, listener, event, payload)
        for listener in list(_listeners)
    ]
