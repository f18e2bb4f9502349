"""Bounded calls to external collaborators.

Every call to the catalog, address book or payment collaborator goes through
``call_collaborator``: it is bounded by a timeout, a timeout or transport
failure is retried once after a short backoff, and a second failure surfaces
as ``ServiceUnavailableError``. A timeout is never treated as success.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import structlog

from marketplace.errors import ServiceUnavailableError

logger = structlog.get_logger(__name__)

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="collaborator")

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_BACKOFF_SECONDS = 0.2
RETRIES = 1


class CollaboratorUnavailable(Exception):
    """Raised by adapters when the remote system cannot be reached."""


def timeout_seconds() -> float:
    return float(os.environ.get("COLLABORATOR_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))


def backoff_seconds() -> float:
    return float(os.environ.get("COLLABORATOR_RETRY_BACKOFF_SECONDS", DEFAULT_BACKOFF_SECONDS))


def call_collaborator(name, fn, *args, **kwargs):
    """Call ``fn`` with a timeout, retrying once on timeout or transport failure."""
    attempts = RETRIES + 1
    for attempt in range(1, attempts + 1):
        future = _executor.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=timeout_seconds())
        except (FutureTimeoutError, TimeoutError, CollaboratorUnavailable) as exc:
            future.cancel()
            reason = str(exc) or type(exc).__name__
            if attempt < attempts:
                delay = backoff_seconds() * attempt
                logger.warning(
                    "Collaborator call failed, retrying",
                    collaborator=name,
                    attempt=attempt,
                    reason=reason,
                    backoff=delay,
                )
                time.sleep(delay)
                continue

            logger.error("Collaborator unavailable", collaborator=name, attempts=attempts, reason=reason)
            raise ServiceUnavailableError(
                {"collaborator": [f"{name} is unavailable, please retry later"]},
                reason=reason,
            ) from exc
