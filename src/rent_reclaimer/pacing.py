from __future__ import annotations

import time
from typing import Callable, Iterator, Sequence, Tuple, TypeVar

T = TypeVar("T")

Sleeper = Callable[[float], None]


def paced(
    items: Sequence[T], delay_s: float, sleep: Sleeper = time.sleep
) -> Iterator[Tuple[int, T]]:
    """
    Yields (index, item), sleeping `delay_s` between items but not after the
    last one. The sleep happens when the consumer asks for the next item, so
    it also applies after an iteration ended with `continue`.
    """
    for i, item in enumerate(items):
        if i > 0 and delay_s > 0:
            sleep(delay_s)
        yield i, item
