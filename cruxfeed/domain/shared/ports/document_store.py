"""
Document store port.

Generic schemaless document database contract used by every repository:
collection-scoped CRUD, simple filtered/ordered/paginated queries,
atomic field transforms, atomic write batches and change listeners.

Collection paths are slash separated. A sub-collection lives under a
parent document: "activityItems/{item_id}/likes".
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

from cruxfeed.domain.shared.errors import ValidationError

# Maximum number of values in an "in" filter.
IN_QUERY_LIMIT = 10

FilterOp = str  # "==", "in", "<", "<=", ">", ">=", "array_contains"
_SUPPORTED_OPS = ("==", "in", "<", "<=", ">", ">=", "array_contains")

_MISSING = object()


def sub_collection(parent: str, doc_id: str, name: str) -> str:
    """Path of a sub-collection below a document."""
    return f"{parent}/{doc_id}/{name}"


def get_field(data: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted field path ("readStatus.u1") from a document."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


# ═══════════════════════════════════════════════════════════
# FIELD TRANSFORMS
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Increment:
    """
    Atomic numeric increment applied server side.

    floor clamps the result (floor=0 keeps counters non-negative).
    A missing field counts as 0.
    """

    amount: int
    floor: Optional[int] = None

    def apply(self, current: Any) -> int:
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        value = int(base) + self.amount
        if self.floor is not None and value < self.floor:
            value = self.floor
        return value


@dataclass(frozen=True)
class ArrayUnion:
    """Append values that are not already present, preserving order."""

    values: Tuple[Any, ...]

    def apply(self, current: Any) -> List[Any]:
        result = list(current) if isinstance(current, list) else []
        for value in self.values:
            if value not in result:
                result.append(value)
        return result


FieldValue = Union[Increment, ArrayUnion, Any]


# ═══════════════════════════════════════════════════════════
# SNAPSHOTS AND QUERIES
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of a stored document."""

    path: str
    id: str
    data: Dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return get_field(self.data, key, default)


@dataclass(frozen=True)
class FieldFilter:
    """Single predicate on a (possibly dotted) field."""

    field: str
    op: FilterOp
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _SUPPORTED_OPS:
            raise ValidationError(f"Unsupported filter operator: {self.op}")
        if self.op == "in":
            if not isinstance(self.value, (list, tuple)):
                raise ValidationError("'in' filter expects a list of values")
            if len(self.value) > IN_QUERY_LIMIT:
                raise ValidationError(
                    f"'in' filter accepts at most {IN_QUERY_LIMIT} values, got {len(self.value)}"
                )

    def matches(self, data: Dict[str, Any]) -> bool:
        current = get_field(data, self.field, _MISSING)
        if current is _MISSING:
            return False
        if self.op == "==":
            return bool(current == self.value)
        if self.op == "in":
            return current in self.value
        if self.op == "array_contains":
            return isinstance(current, list) and self.value in current
        try:
            if self.op == "<":
                return bool(current < self.value)
            if self.op == "<=":
                return bool(current <= self.value)
            if self.op == ">":
                return bool(current > self.value)
            return bool(current >= self.value)
        except TypeError:
            # Mixed types never match range filters
            return False


@dataclass(frozen=True)
class Query:
    """
    Immutable query description.

    Ordering is on a single field with the document id as implicit
    secondary key (same direction), so cursors are stable even when
    several documents share a timestamp.

    Example:
        >>> q = (
        ...     Query("activityItems")
        ...     .where("authorId", "in", ["u1", "u2"])
        ...     .order("createdAt", descending=True)
        ...     .limit_to(21)
        ... )
    """

    collection: str
    filters: Tuple[FieldFilter, ...] = ()
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    start_after: Optional[Tuple[Any, str]] = None

    def where(self, field_path: str, op: FilterOp, value: Any) -> "Query":
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def order(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order_by=field_path, descending=descending)

    def limit_to(self, limit: int) -> "Query":
        if limit < 1:
            raise ValidationError(f"limit must be >= 1, got {limit}")
        return replace(self, limit=limit)

    def after(self, sort_value: Any, doc_id: str) -> "Query":
        """Resume strictly after the document with (sort_value, doc_id)."""
        if self.order_by is None:
            raise ValidationError("start_after requires an order_by field")
        return replace(self, start_after=(sort_value, doc_id))

    def after_snapshot(self, snapshot: DocumentSnapshot) -> "Query":
        if self.order_by is None:
            raise ValidationError("start_after requires an order_by field")
        return self.after(snapshot.get(self.order_by), snapshot.id)

    def matches(self, data: Dict[str, Any]) -> bool:
        return all(f.matches(data) for f in self.filters)


# ═══════════════════════════════════════════════════════════
# PORTS
# ═══════════════════════════════════════════════════════════


SnapshotCallback = Callable[[List[DocumentSnapshot]], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


@runtime_checkable
class ListenerRegistration(Protocol):
    """Handle returned by IDocumentStore.listen()."""

    def remove(self) -> None:
        """Stop delivering snapshots."""
        ...


@runtime_checkable
class IWriteBatch(Protocol):
    """
    Group of writes committed atomically.

    Writes are buffered; nothing reaches the store before commit().
    """

    def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> "IWriteBatch":
        ...

    def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> "IWriteBatch":
        ...

    def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> "IWriteBatch":
        """Write a new document; commit fails if it already exists."""
        ...

    def delete(self, path: str, doc_id: str, must_exist: bool = False) -> "IWriteBatch":
        """Delete a document; with must_exist, commit fails when it is absent."""
        ...

    def __len__(self) -> int:
        ...

    async def commit(self) -> None:
        """
        Apply all buffered writes as one unit.

        Raises:
            DocumentNotFoundError: An update, or a must_exist delete,
                targeted a missing document (nothing is written)
            DocumentExistsError: A create targeted an existing document
                (nothing is written)
            StoreError: On storage failure
        """
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Document database contract.

    Implementations:
    - InMemoryDocumentStore (tests, local development)
    - MongoDocumentStore (motor / MongoDB)

    Every method raises StoreError on transport failure.
    """

    async def get(self, path: str, doc_id: str) -> Optional[DocumentSnapshot]:
        """Fetch one document, None when absent."""
        ...

    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or overwrite a document."""
        ...

    async def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Create a document only if it does not exist yet.

        Raises:
            DocumentExistsError: If the document already exists (it is left untouched)
        """
        ...

    async def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> None:
        """
        Update fields of an existing document.

        Keys may be dotted paths. Values may be Increment / ArrayUnion.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    async def delete(self, path: str, doc_id: str) -> None:
        """Delete a document (no-op when absent)."""
        ...

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        """Run a query and return matching documents in order."""
        ...

    def batch(self) -> IWriteBatch:
        """Start a new atomic write batch."""
        ...

    def listen(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ListenerRegistration:
        """
        Subscribe to a query.

        on_snapshot receives the full ordered result once immediately and
        again after every change affecting the collection.
        """
        ...


@dataclass
class BufferedWrite:
    """One pending write inside a batch."""

    kind: str  # "set" | "create" | "update" | "delete"
    path: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    must_exist: bool = False


def sort_key(value: Any) -> Tuple[int, Any]:
    """
    Total ordering used for query results.

    None sorts first; mixed types are grouped by type rank so sorting
    never raises.
    """
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.timestamp())
    if isinstance(value, str):
        return (4, value)
    return (5, repr(value))


def ensure_in_values(values: Sequence[Any]) -> List[Any]:
    """Deduplicate values for an 'in' filter, preserving order."""
    seen: List[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
