"""moquery value types.

Exports references, queries, selection rules, retrieval records and
change-notification payloads.
"""
from __future__ import annotations

from moquery.types.records import (
    AttributeRecord,
    AttributeSpec,
    ChangeOp,
    FilterUpdate,
    ObjectQuery,
    ObjectReference,
    ObjectUpdate,
    PropertyChange,
    QueryBatch,
    UpdateKind,
    UpdateSet,
)
from moquery.types.selection import (
    TRAVERSE_PARENT,
    Selection,
    SelectionSpec,
    TraversalSpec,
    parent_traversal,
    validate_select_set,
)

__all__ = [
    # Queries
    "ObjectReference",
    "AttributeSpec",
    "ObjectQuery",
    "QueryBatch",
    # Selection rules
    "Selection",
    "SelectionSpec",
    "TraversalSpec",
    "TRAVERSE_PARENT",
    "parent_traversal",
    "validate_select_set",
    # Results
    "AttributeRecord",
    "ChangeOp",
    "UpdateKind",
    "PropertyChange",
    "ObjectUpdate",
    "FilterUpdate",
    "UpdateSet",
]
