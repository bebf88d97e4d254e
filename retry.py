"""
retry.py - Bounded polling for eventually-consistent side effects.

Two pieces:
    wait(seconds)        -> suspend the current coroutine only
    keep_trying(probe)   -> run `probe` until it succeeds or the budget runs out

The probe decides what "success" means; this module only owns the attempt
count and the delay schedule:

    wait(initial_delay)
    attempt 1 -> FAILED -> wait(each_delay)
    attempt 2 -> FAILED -> wait(each_delay)
    ...
    attempt N -> FAILED -> RetryTimeoutError(failure_reason)

Any attempt returning SUCCEEDED ends the loop at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from errors import RetryTimeoutError
from logging_config import get_logger
from models import AttemptOutcome

logger = get_logger(__name__)

Probe = Callable[[], Awaitable[AttemptOutcome]]
Sleep = Callable[[float], Awaitable[None]]


async def wait(seconds: float, *, sleep: Sleep = asyncio.sleep) -> None:
    """Suspend the calling coroutine for `seconds` without blocking the loop."""
    if seconds < 0:
        raise ValueError(f"delay cannot be negative: {seconds}")
    await sleep(seconds)


async def keep_trying(
    probe: Probe,
    *,
    retry_count: int,
    initial_delay: float,
    each_delay: float,
    failure_reason: str,
    log: Optional[logging.Logger] = None,
    sleep: Sleep = asyncio.sleep,
) -> Optional[RetryTimeoutError]:
    """Run `probe` up to `retry_count` times.

    Returns None as soon as the probe reports SUCCEEDED, otherwise a
    RetryTimeoutError labelled with `failure_reason`. Exceptions raised by
    the probe are not caught here.
    """
    log = log or logger
    if initial_delay < 0 or each_delay < 0:
        raise ValueError(
            f"delays cannot be negative: initial_delay={initial_delay}, each_delay={each_delay}"
        )

    if retry_count <= 0:
        log.warning("retry_exhausted | reason=%r | attempts=0 | note='empty attempt budget'", failure_reason)
        return RetryTimeoutError(failure_reason, attempts=0)

    await wait(initial_delay, sleep=sleep)

    for attempt in range(1, retry_count + 1):
        outcome = await probe()
        log.debug(
            "retry_attempt | reason=%r | attempt=%s/%s | outcome=%s",
            failure_reason,
            attempt,
            retry_count,
            outcome.value,
        )
        if outcome is AttemptOutcome.SUCCEEDED:
            return None
        if attempt < retry_count:
            await wait(each_delay, sleep=sleep)

    log.warning("retry_exhausted | reason=%r | attempts=%s", failure_reason, retry_count)
    return RetryTimeoutError(failure_reason, attempts=retry_count)
