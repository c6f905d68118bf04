"""
Translation of document-store concepts to MongoDB.

Pure functions, no I/O:

- collection paths -> (collection name, parent key)
- Query -> find() filter + sort
- field updates (incl. Increment / ArrayUnion) -> aggregation pipeline

Sub-collections are flattened: "activityItems/a1/likes" is stored in the
collection "activityItems.likes" with ``_parent = "a1"``, and the Mongo
``_id`` is "a1/<doc id>" so that ids only need to be unique per parent.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from cruxfeed.domain.shared.errors import ValidationError
from cruxfeed.domain.shared.ports.document_store import (
    ArrayUnion,
    FieldFilter,
    FieldValue,
    Increment,
    Query,
)

PARENT_FIELD = "_parent"
KEY_FIELD = "_key"
RESERVED_FIELDS = ("_id", PARENT_FIELD, KEY_FIELD)

_RANGE_OPS = {"<": "$lt", "<=": "$lte", ">": "$gt", ">=": "$gte"}


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """
    Map a slash-separated collection path to (collection, parent).

    Example:
        >>> split_path("activityItems")
        ('activityItems', None)
        >>> split_path("activityItems/a1/likes")
        ('activityItems.likes', 'a1')
        >>> split_path("a/x/b/y/c")
        ('a.b.c', 'x/y')
    """
    parts = path.split("/")
    if len(parts) % 2 == 0 or any(not p for p in parts):
        raise ValidationError(f"Invalid collection path: {path!r}")
    names = parts[0::2]
    parents = parts[1::2]
    return ".".join(names), ("/".join(parents) if parents else None)


def storage_id(parent: Optional[str], doc_id: str) -> str:
    return doc_id if parent is None else f"{parent}/{doc_id}"


def to_stored(parent: Optional[str], doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Document as written to MongoDB."""
    stored = {k: v for k, v in data.items() if k not in RESERVED_FIELDS}
    stored["_id"] = storage_id(parent, doc_id)
    if parent is not None:
        stored[PARENT_FIELD] = parent
        stored[KEY_FIELD] = doc_id
    return stored


def from_stored(doc: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """(document id, data) of a stored MongoDB document."""
    doc_id = doc.get(KEY_FIELD, doc["_id"])
    data = {k: v for k, v in doc.items() if k not in RESERVED_FIELDS}
    return str(doc_id), data


def id_filter(parent: Optional[str], doc_id: str) -> Dict[str, Any]:
    return {"_id": storage_id(parent, doc_id)}


# ═══════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════


def filter_condition(f: FieldFilter) -> Dict[str, Any]:
    if f.op == "==":
        return {f.field: {"$eq": f.value}}
    if f.op == "in":
        return {f.field: {"$in": list(f.value)}}
    if f.op == "array_contains":
        return {f.field: {"$elemMatch": {"$eq": f.value}}}
    return {f.field: {_RANGE_OPS[f.op]: f.value}}


def build_filter(query: Query, parent: Optional[str]) -> Dict[str, Any]:
    """find() filter for a query, including the start_after cursor."""
    clauses: List[Dict[str, Any]] = []
    if parent is not None:
        clauses.append({PARENT_FIELD: parent})
    clauses.extend(filter_condition(f) for f in query.filters)

    if query.start_after is not None and query.order_by is not None:
        value, doc_id = query.start_after
        op = "$lt" if query.descending else "$gt"
        clauses.append(
            {
                "$or": [
                    {query.order_by: {op: value}},
                    {query.order_by: value, "_id": {op: storage_id(parent, doc_id)}},
                ]
            }
        )

    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def build_sort(query: Query) -> List[Tuple[str, int]]:
    direction = -1 if query.descending else 1
    if query.order_by is None:
        return [("_id", 1)]
    return [(query.order_by, direction), ("_id", direction)]


# ═══════════════════════════════════════════════════════════
# UPDATES
# ═══════════════════════════════════════════════════════════


def _field_ref(path: str) -> str:
    return f"${path}"


def field_expression(path: str, value: FieldValue) -> Any:
    """Aggregation expression computing the new value of one field."""
    if isinstance(value, Increment):
        expr: Any = {"$add": [{"$ifNull": [_field_ref(path), 0]}, value.amount]}
        if value.floor is not None:
            expr = {"$max": [value.floor, expr]}
        return expr
    if isinstance(value, ArrayUnion):
        current = {"$ifNull": [_field_ref(path), []]}
        return {
            "$concatArrays": [
                current,
                {
                    "$filter": {
                        "input": {"$literal": list(value.values)},
                        "as": "candidate",
                        "cond": {"$not": [{"$in": ["$$candidate", current]}]},
                    }
                },
            ]
        }
    return {"$literal": value}


def build_update_pipeline(fields: Dict[str, FieldValue]) -> List[Dict[str, Any]]:
    """
    Pipeline-style update so that floored increments stay atomic.

    Example:
        >>> build_update_pipeline({"likeCount": Increment(-1, floor=0)})
        [{'$set': {'likeCount': {'$max': [0, {'$add': [{'$ifNull': ['$likeCount', 0]}, -1]}]}}}]
    """
    return [{"$set": {path: field_expression(path, value) for path, value in fields.items()}}]
