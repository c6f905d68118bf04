"""
Streamed collection scans and chunked "in" lookups.

Full-collection searches page through the store instead of loading the
collection in one read, so an indexed search backend can later replace
the scan without changing repository signatures.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Iterable, List, Sequence, TypeVar

from cruxfeed.domain.shared.ports.document_store import (
    IN_QUERY_LIMIT,
    DocumentSnapshot,
    IDocumentStore,
    Query,
    ensure_in_values,
)

T = TypeVar("T")

SCAN_PAGE_SIZE = 200


def chunked(values: Sequence[T], size: int = IN_QUERY_LIMIT) -> List[List[T]]:
    """
    Split values into lists of at most ``size``.

    Example:
        >>> chunked(["a", "b", "c"], 2)
        [['a', 'b'], ['c']]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return [list(values[i : i + size]) for i in range(0, len(values), size)]


async def scan(
    store: IDocumentStore,
    collection: str,
    order_by: str = "id",
    page_size: int = SCAN_PAGE_SIZE,
) -> AsyncIterator[DocumentSnapshot]:
    """Yield every document of a collection, one store page at a time."""
    query = Query(collection).order(order_by).limit_to(page_size)
    while True:
        page = await store.query(query)
        for snapshot in page:
            yield snapshot
        if len(page) < page_size:
            return
        query = query.after_snapshot(page[-1])


async def fetch_where_in(
    store: IDocumentStore,
    collection: str,
    field: str,
    values: Iterable[Any],
) -> List[DocumentSnapshot]:
    """Run ``field in values`` in chunks of the store's "in" limit."""
    unique = ensure_in_values(list(values))
    results: List[DocumentSnapshot] = []
    for chunk in chunked(unique):
        results.extend(await store.query(Query(collection).where(field, "in", chunk)))
    return results
