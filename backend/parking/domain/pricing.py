from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .errors import InvalidTimeIntervalError

SLAB_MINUTES = 30
SLAB_RATE = 50
DEFAULT_EXIT_OPTION_COUNT = 12


@dataclass(frozen=True)
class PriceQuote:
    exit_time: datetime
    price: int


def count_slabs(entry_time: datetime, exit_time: datetime) -> int:
    """
    Number of billable 30 minute slabs between entry and exit.
    Partial minutes round up to a whole minute, partial slabs to a whole slab.
    Raises InvalidTimeIntervalError when exit is not after entry.
    """
    elapsed = exit_time - entry_time
    if elapsed <= timedelta(0):
        raise InvalidTimeIntervalError("exit time must be after entry time")
    minutes = math.ceil(elapsed / timedelta(minutes=1))
    return math.ceil(minutes / SLAB_MINUTES)


def calculate_price(entry_time: datetime, exit_time: datetime) -> int:
    return count_slabs(entry_time, exit_time) * SLAB_RATE


def generate_exit_time_options(
    entry_time: datetime,
    count: int = DEFAULT_EXIT_OPTION_COUNT,
) -> list[PriceQuote]:
    """Exit times at every slab boundary after `entry_time`, each with its price."""
    if count < 0:
        raise ValueError("count must be >= 0")
    options: list[PriceQuote] = []
    for i in range(1, count + 1):
        exit_time = entry_time + timedelta(minutes=i * SLAB_MINUTES)
        options.append(PriceQuote(exit_time=exit_time, price=calculate_price(entry_time, exit_time)))
    return options
