"""Bounded concurrent map with a pause between batches."""

import asyncio
import math


async def batch_map(items, worker, batch_size: int, delay: float = 0.0, on_batch=None) -> list:
    """Run `worker(item)` over `items`, `batch_size` at a time.

    Each batch runs concurrently and completes when every call has settled.
    A failing call yields its exception in place of a result, so one bad
    item never aborts the batch. Results keep input order. `delay` seconds
    are slept between batches, not after the last one. `on_batch(index,
    total, results)` is called after each batch with a 1-based index.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    items = list(items)
    total = math.ceil(len(items) / batch_size)
    results = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        batch_results = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        results.extend(batch_results)
        if on_batch is not None:
            on_batch(start // batch_size + 1, total, batch_results)
        if start + batch_size < len(items) and delay > 0:
            await asyncio.sleep(delay)
    return results
