"""Readiness polling for asynchronously created schema objects.

Attributes and indexes are created in the ``processing`` state and become
``available`` some time later.  ``wait_until_available`` drives the
``SUBMITTED -> AVAILABLE | TIMEOUT | FAILED`` state machine for one object
with a bounded number of status checks.

The wait between checks goes through ``PollPolicy.sleep`` so tests can
pass an instantaneous sleep.

Usage:
    from appwrite_clone.schema.polling import PollPolicy, wait_until_available

    policy = PollPolicy(max_attempts=30, interval=1.0)
    outcome = await wait_until_available(lambda: current_status("title"), policy)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from appwrite_clone.schema.models import FAILED_STATUSES, STATUS_AVAILABLE

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PollOutcome(str, Enum):
    AVAILABLE = "available"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass(frozen=True)
class PollPolicy:
    """Bounds for one readiness poll.

    Attributes:
        max_attempts: Status checks before giving up.
        interval: Seconds to wait between checks.
        sleep: Async wait function (``asyncio.sleep`` by default).
    """

    max_attempts: int
    interval: float = 1.0
    sleep: Sleep = field(default=asyncio.sleep, compare=False)


async def wait_until_available(
    fetch_status: Callable[[], Awaitable[str | None]],
    policy: PollPolicy,
) -> PollOutcome:
    """Poll an object's status until it is available or attempts run out.

    Args:
        fetch_status: Async callable returning the object's current status,
            or ``None`` if the object is not listed (yet).
        policy: Attempt bound, interval and sleep function.

    Returns:
        ``AVAILABLE`` once the status reads ``available``; ``FAILED`` as
        soon as the service reports a terminal failure status; ``TIMEOUT``
        after ``max_attempts`` checks without either.  Never raises for a
        timeout -- callers decide what a negative outcome means.

    Raises:
        Exception: Errors from ``fetch_status`` propagate unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        status = await fetch_status()

        if status == STATUS_AVAILABLE:
            return PollOutcome.AVAILABLE
        if status in FAILED_STATUSES:
            return PollOutcome.FAILED

        # No point sleeping after the last check
        if attempt < policy.max_attempts:
            await policy.sleep(policy.interval)

    logger.debug("Gave up after %d status checks", policy.max_attempts)
    return PollOutcome.TIMEOUT
