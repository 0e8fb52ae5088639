"""Bounded polling for eventually-consistent remote state."""

import time
from typing import Callable, TypeVar

from loguru import logger

T = TypeVar('T')


def poll(
    fetch: Callable[[], T],
    done: Callable[[T], bool],
    attempts: int = 3,
    delay: float = 2.0,
    sleeper: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fetch`` until ``done`` accepts its result or attempts run out.

    The loop sleeps ``delay`` seconds between attempts (never after the last
    one) and cannot be cancelled once started.

    Args:
        fetch: Produces a fresh observation of the remote state
        done: Returns True when no further polling is needed
        attempts: Maximum number of calls to ``fetch``
        delay: Seconds to wait between attempts
        sleeper: Sleep function, replaceable in tests

    Returns:
        The last observation, accepted or not
    """
    if attempts < 1:
        raise ValueError('attempts must be at least 1')

    attempt = 1
    result = fetch()
    while not done(result) and attempt < attempts:
        logger.debug(f'Poll attempt {attempt}/{attempts} not done, retrying in {delay}s')
        sleeper(delay)
        attempt += 1
        result = fetch()
    return result
