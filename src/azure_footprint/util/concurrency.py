from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

Task = Callable[[], R]

SEQUENTIAL = "sequential"
BATCHED = "batched"
CONCURRENT = "concurrent"


def parallel_map_ordered(
    func: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Execute func over items in a thread pool and return results preserving the
    input order. Exceptions from workers are propagated.

    Uses a sliding window of futures so large iterables are not materialized.
    """
    results: List[R] = []
    iterator = iter(items)
    inflight: Dict[Future[R], int] = {}
    pending: Dict[int, R] = {}
    next_index = 0
    submitted = 0

    def _submit_next() -> bool:
        nonlocal submitted
        try:
            item = next(iterator)
        except StopIteration:
            return False
        inflight[executor.submit(func, item)] = submitted
        submitted += 1
        return True

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for _ in range(max_workers):
            if not _submit_next():
                break

        while inflight:
            done, _ = wait(inflight.keys(), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = inflight.pop(fut)
                try:
                    pending[idx] = fut.result()
                except BaseException:
                    for pending_fut in inflight:
                        pending_fut.cancel()
                    raise
            for _ in range(len(done)):
                if not _submit_next():
                    break
            while next_index in pending:
                results.append(pending.pop(next_index))
                next_index += 1

    return results


@dataclass(frozen=True)
class ExecutionStrategy:
    """
    How a list of deferred tasks is executed:
      - sequential: one task at a time, each awaited before the next starts
      - batched: consecutive groups of batch_size run concurrently, with a
        barrier between groups
      - concurrent: every task in flight at once
    """

    mode: str
    batch_size: Optional[int] = None

    @classmethod
    def sequential(cls) -> "ExecutionStrategy":
        return cls(mode=SEQUENTIAL)

    @classmethod
    def batched(cls, batch_size: int) -> "ExecutionStrategy":
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        return cls(mode=BATCHED, batch_size=batch_size)

    @classmethod
    def concurrent(cls) -> "ExecutionStrategy":
        return cls(mode=CONCURRENT)


def strategy_for(chunk_by_day: bool, subscription_chunks: Optional[int]) -> ExecutionStrategy:
    if chunk_by_day:
        return ExecutionStrategy.sequential()
    if subscription_chunks:
        return ExecutionStrategy.batched(subscription_chunks)
    return ExecutionStrategy.concurrent()


def split_every(size: int, items: Sequence[T]) -> List[List[T]]:
    """
    Split items into consecutive chunks of `size`; the last chunk may be shorter.
    """
    if size < 1:
        raise ValueError("size must be a positive integer")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def isolate(task: Task[List[R]], on_error: Callable[[BaseException], None]) -> Task[List[R]]:
    """
    Wrap a task so it always resolves: failures are reported to on_error and
    replaced by an empty result.
    """

    def _isolated() -> List[R]:
        try:
            return task()
        except Exception as e:
            on_error(e)
            return []

    return _isolated


def _call(task: Task[R]) -> R:
    return task()


def run_tasks(tasks: Sequence[Task[R]], strategy: ExecutionStrategy) -> List[R]:
    """
    Execute deferred tasks according to strategy and return their results in
    task order (not completion order).
    """
    if not tasks:
        return []
    if strategy.mode == SEQUENTIAL:
        return [task() for task in tasks]

    if strategy.mode == BATCHED and strategy.batch_size:
        batches = split_every(strategy.batch_size, tasks)
    else:
        batches = [list(tasks)]

    results: List[R] = []
    for batch in batches:
        # Window equals the batch, so every task of the batch is in flight at once.
        results.extend(parallel_map_ordered(_call, batch, max_workers=len(batch)))
    return results
