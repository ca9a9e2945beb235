"""Bounded fan-out for batches of blocking provider calls.

Re-enriching stored assets issues one upload + vision call per asset. Calls
run on a capped thread pool; every item gets its own outcome so one failure
never cancels its siblings. Per-call time bounds come from the httpx timeouts
of the clients doing the work.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

from imageecology.core.logging import log

Item = TypeVar("Item")
T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[Item, T]):
    """Result of one fan-out item: exactly one of ``result``/``error`` is set."""

    item: Item
    result: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def bounded_map(
    fn: Callable[[Item], T],
    items: Sequence[Item],
    max_concurrency: int = 4,
) -> list[Outcome[Item, T]]:
    """Run ``fn`` over ``items`` with at most ``max_concurrency`` in flight.

    Args:
        fn: Blocking callable applied to each item
        items: Inputs
        max_concurrency: Worker cap (values below 1 are treated as 1)

    Returns:
        One Outcome per item, in input order
    """
    if not items:
        return []

    workers = max(1, min(max_concurrency, len(items)))
    log.info(f"FAN_OUT_START items={len(items)} workers={workers}")

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fanout") as pool:
        futures = [pool.submit(fn, item) for item in items]
        outcomes: list[Outcome[Item, T]] = []
        for item, future in zip(items, futures):
            try:
                outcomes.append(Outcome(item=item, result=future.result()))
            except Exception as e:
                outcomes.append(Outcome(item=item, error=e))

    failed = sum(1 for o in outcomes if not o.ok)
    log.info(f"FAN_OUT_DONE ok={len(outcomes) - failed} failed={failed}")
    return outcomes
