"""
Bounded-concurrency batching.

Items are processed in consecutive groups of ``batch_width``; every group
runs fully concurrently on its own thread pool and must settle before the
next group starts. A failing item never cancels its siblings or later groups.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import islice
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


@dataclass
class BatchOutcome(Generic[T, R]):
    """The settled result of one item: a value or the captured exception."""
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_batches(items: Iterable[T], batch_width: int) -> Iterator[List[T]]:
    """
    Yield consecutive lists of at most ``batch_width`` items.

    ``items`` is consumed lazily, one group at a time.
    """
    if batch_width < 1:
        raise ValueError(f"batch_width must be positive, got {batch_width}")
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, batch_width))
        if not batch:
            return
        yield batch


def _settle(item: T, worker: Callable[[T], R]) -> BatchOutcome:
    try:
        return BatchOutcome(item=item, value=worker(item))
    except Exception as e:
        logger.warning(f"[BATCH] Unit {item!r} failed: {e}")
        return BatchOutcome(item=item, error=e)


def run_batched(
    items: Iterable[T],
    worker: Callable[[T], R],
    batch_width: int = 10,
    on_batch: Optional[Callable[[int, List[BatchOutcome]], Any]] = None,
    thread_name_prefix: str = "BatchWorker",
) -> List[BatchOutcome]:
    """
    Run ``worker`` over ``items`` with at most ``batch_width`` in flight.

    Args:
        items: Independent units of work; an iterator is drawn from one
            group at a time.
        worker: Called once per item; exceptions are captured per item.
        batch_width: Group size; groups run strictly one after another.
        on_batch: Optional callback ``(batch_index, outcomes)`` after each group.
        thread_name_prefix: Thread name prefix, for log readability.

    Returns:
        One BatchOutcome per item, in input order.
    """
    outcomes: List[BatchOutcome] = []

    for index, batch in enumerate(iter_batches(items, batch_width)):
        logger.debug(f"[BATCH] Processing batch {index + 1} ({len(batch)} items)")
        with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix=thread_name_prefix) as pool:
            futures = [pool.submit(_settle, item, worker) for item in batch]
            batch_outcomes = [future.result() for future in futures]

        outcomes.extend(batch_outcomes)
        if on_batch is not None:
            on_batch(index, batch_outcomes)

    return outcomes
