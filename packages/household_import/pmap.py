"""Order-preserving bounded thread-pool map, used for the first commit pass.

``p_map(items, mapper, concurrency=n)`` runs ``mapper`` over ``items`` with at
most ``n`` calls in flight and returns results in input order. With
``concurrency == 1`` the mapper runs inline on the calling thread.

Mappers are expected to capture their own failures and return them as
values; an exception escaping a mapper cancels work that has not started yet
and is re-raised to the caller once running calls drain.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

MAX_WORKERS_ENV = "HOUSEHOLD_IMPORT_MAX_WORKERS"
MAX_WORKERS_CAP = 8


def resolve_max_workers(requested: int | None = None) -> int:
    """Resolve the worker count for the first commit pass.

    An explicit positive ``requested`` wins; otherwise the optional
    ``HOUSEHOLD_IMPORT_MAX_WORKERS`` env var is honored. Either way the
    result is capped at 8 and is never below 1. Default: 1 (sequential).
    """

    if requested is not None and requested > 0:
        return min(requested, MAX_WORKERS_CAP)
    env_workers = os.getenv(MAX_WORKERS_ENV)
    try:
        workers = int(env_workers) if env_workers else None
    except ValueError:
        workers = None
    if workers is not None and workers > 0:
        return min(workers, MAX_WORKERS_CAP)
    return 1


def p_map(
    items: Sequence[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    thread_name_prefix: str = "hh-import",
) -> list[OutT]:
    if concurrency < 1:
        raise ValueError("concurrency must be a positive integer")
    if concurrency == 1 or len(items) <= 1:
        return [mapper(item) for item in items]

    results: dict[int, OutT] = {}
    pending = iter(enumerate(items))
    future_to_idx: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(
        max_workers=min(concurrency, len(items)), thread_name_prefix=thread_name_prefix
    ) as pool:

        def _submit() -> Future[OutT] | None:
            try:
                idx, item = next(pending)
            except StopIteration:
                return None
            fut = pool.submit(mapper, item)
            future_to_idx[fut] = idx
            return fut

        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit()
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
                nxt = _submit()
                if nxt is not None:
                    active.add(nxt)

    return [results[i] for i in range(len(items))]


__all__ = ["MAX_WORKERS_CAP", "MAX_WORKERS_ENV", "p_map", "resolve_max_workers"]
