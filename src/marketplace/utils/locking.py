"""Per-aggregate serialization for operations that read, validate and write.

Protean's unit of work makes each command atomic; it does not stop two
requests from reading the same cart or order before either commits. Routes
that mutate a shared aggregate take the aggregate's lock around
``current_domain.process`` so the read-validate-commit cycle of one request
finishes before the next one starts.

Locks are process-local. Multi-process deployments rely on the database
provider's own version checks instead.
"""

import threading
from contextlib import ExitStack, contextmanager

from protean.utils.globals import current_domain

_registry_lock = threading.Lock()
_locks: dict[str, threading.RLock] = {}


def _lock_for(key: str) -> threading.RLock:
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


@contextmanager
def aggregate_locks(*keys):
    """Hold the locks for all given keys, acquired in sorted order."""
    with ExitStack() as stack:
        for key in sorted({k for k in keys if k}):
            stack.enter_context(_lock_for(key))
        yield


def cart_key(cart_id=None, buyer_id=None) -> str:
    if buyer_id:
        return f"cart:buyer:{buyer_id}"
    return f"cart:{cart_id}"


def order_key(order_id) -> str:
    return f"order:{order_id}"


def return_key(return_id) -> str:
    return f"return:{return_id}"


def process_exclusively(command, *keys):
    """Process a command synchronously while holding the given aggregate locks."""
    with aggregate_locks(*keys):
        return current_domain.process(command, asynchronous=False)
