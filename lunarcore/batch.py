"""Fan-out helper for evaluating a pure function over many instants."""

from __future__ import annotations

from typing import Callable, Iterable, List, TypeVar

from joblib import Parallel, delayed

from .types import Instant

T = TypeVar("T")


def evaluate_many(fn: Callable[[Instant], T], instants: Iterable[Instant], n_jobs: int = 1) -> List[T]:
    """Apply *fn* to every instant, preserving input order.

    ``n_jobs`` follows :class:`joblib.Parallel` semantics (``-1`` uses all
    cores); the default evaluates in-process without a worker pool.
    """

    instants = list(instants)
    if n_jobs == 1 or len(instants) < 2:
        return [fn(jd) for jd in instants]
    return Parallel(n_jobs=n_jobs, prefer="threads")(delayed(fn)(jd) for jd in instants)
