from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Outcome(Generic[T, R]):
    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def bounded_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    limit: int = 5,
    isolate_errors: bool = True,
) -> list[Outcome[T, R]]:
    """Apply ``func`` to every item, ``limit`` items at a time.

    Items run in consecutive batches: a batch of at most ``limit`` calls is
    started together and fully awaited before the next one begins. Results
    keep the input order. With ``isolate_errors`` an exception raised for one
    item is stored on its ``Outcome`` instead of aborting the others.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    pending = list(items)
    if not pending:
        return []

    outcomes: list[Outcome[T, R]] = []
    with ThreadPoolExecutor(max_workers=min(limit, len(pending))) as pool:
        for start in range(0, len(pending), limit):
            batch = pending[start : start + limit]
            futures = [pool.submit(func, item) for item in batch]
            for item, future in zip(batch, futures):
                try:
                    outcomes.append(Outcome(item=item, value=future.result()))
                except Exception as exc:
                    if not isolate_errors:
                        raise
                    outcomes.append(Outcome(item=item, error=exc))
    return outcomes
