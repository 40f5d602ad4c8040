import logging
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


def fetch_all(loaders, max_workers=None):
    """
    Runs independent fetches concurrently and waits for all of them.
    `loaders` maps a name to a zero-argument callable; returns name -> result.
    The first failure is re-raised and no partial result is returned.
    """
    if not loaders:
        return {}

    app = current_app._get_current_object() if has_app_context() else None

    def run(fn):
        if app is None:
            return fn()
        with app.app_context():
            return fn()

    workers = max_workers or min(len(loaders), 8)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {name: pool.submit(run, fn) for name, fn in loaders.items()}
        return {name: future.result() for name, future in futures.items()}


class SelectionGuard:
    """
    Liveness flag for one view. Every new selection invalidates the fetches
    started for the previous one; their results are discarded.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0

    def select(self):
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token):
        with self._lock:
            return token == self._generation

    def close(self):
        """View torn down: anything still in flight is stale."""
        with self._lock:
            self._generation += 1

    def load_for_selection(self, selection, loader):
        """Returns loader(selection), or None if the selection changed meanwhile."""
        token = self.select()
        result = loader(selection)
        if not self.is_current(token):
            logger.info(f"Discarding stale result for selection {selection}")
            return None
        return result


class GuardRegistry:
    """
    One SelectionGuard per key (user id), least recently used first out
    once `max_size` keys are held. An evicted guard is not closed, so a
    fetch already holding it still completes.
    """

    def __init__(self, max_size=1024):
        self._lock = threading.Lock()
        self._guards = OrderedDict()
        self.max_size = max_size

    def __len__(self):
        with self._lock:
            return len(self._guards)

    def for_key(self, key):
        with self._lock:
            guard = self._guards.get(key)
            if guard is None:
                guard = self._guards[key] = SelectionGuard()
                while len(self._guards) > self.max_size:
                    self._guards.popitem(last=False)
            else:
                self._guards.move_to_end(key)
            return guard

    def discard(self, key):
        with self._lock:
            guard = self._guards.pop(key, None)
        if guard:
            guard.close()
