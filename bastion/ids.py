import logging
import secrets
import time

logger = logging.getLogger(__name__)

ID_RANDOM_BYTES = 6


def new_id(prefix):
    """Return ``<prefix>-<12 hex chars>`` from a strong random source.

    Falls back to a nanosecond timestamp if the random source is
    unavailable, so generating an id never fails.
    """
    try:
        suffix = secrets.token_hex(ID_RANDOM_BYTES)
    except (OSError, NotImplementedError) as e:
        logger.warning(f"Random source unavailable, using timestamp id: {e}")
        suffix = str(time.time_ns())
    return f"{prefix}-{suffix}"
