from __future__ import annotations

import logging
from typing import Callable

from retry.api import retry_call

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1
POLL_ATTEMPTS = 100


class _Pending(Exception):
    pass


def wait_for(predicate: Callable[[], bool], description: str) -> bool:
    """
    Recheck a condition every POLL_INTERVAL seconds, at most POLL_ATTEMPTS times.

    :param predicate: The condition to wait for.
    :param description: What is being waited for, used in log messages.
    :return: Whether the condition came true before the attempts ran out.
    """

    def check():
        if not predicate():
            raise _Pending(description)

    logger.debug(f"Waiting for {description}")
    try:
        retry_call(
            check,
            exceptions=_Pending,
            tries=POLL_ATTEMPTS,
            delay=POLL_INTERVAL,
            logger=None,
        )
    except _Pending:
        logger.debug(f"Gave up waiting for {description}")
        return False
    return True
