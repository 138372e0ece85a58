from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from .errors import HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOO_MANY_REQUESTS = 429


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-delay retry for transient server errors."""

    max_attempts: int = 3
    delay_s: float = 1.5


def _is_transient(exc: HttpError) -> bool:
    return exc.status >= 500 or exc.status == TOO_MANY_REQUESTS


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    policy: RetryPolicy | None = None,
    **kwargs: Any,
) -> T:
    """Call ``func``, retrying 5xx and 429 responses.

    Any other error, and the last transient one, propagates unchanged.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return func(*args, **kwargs)
        except HttpError as e:
            if not _is_transient(e) or attempt >= policy.max_attempts:
                raise
            logger.warning(
                "[retry] status=%d attempt=%d/%d, retrying in %.1fs",
                e.status,
                attempt,
                policy.max_attempts,
                policy.delay_s,
            )
            time.sleep(policy.delay_s)
