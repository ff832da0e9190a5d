"""
Storage error handling shared by the engine modules.

Mutating operations translate driver failures into ``StoreUnavailable`` and
surface them immediately. Read-only aggregation paths get one retry after a
short backoff.
"""
import functools
import logging
import time
from contextlib import contextmanager

from django.conf import settings
from django.db import InterfaceError, OperationalError

from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


@contextmanager
def store_errors():
    """Translate transient database failures into ``StoreUnavailable``."""
    try:
        yield
    except TRANSIENT_ERRORS as exc:
        logger.warning("Store unavailable: %s", exc)
        raise StoreUnavailable() from exc


def read_with_retry(func):
    """Retry a read-only query once on a transient store failure."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            delay = getattr(settings, "SKILLSWAP_READ_RETRY_DELAY", 0.05)
            logger.warning("Retrying %s after store error: %s", func.__name__, exc)
            time.sleep(delay)
        with store_errors():
            return func(*args, **kwargs)

    return wrapper
