"""Value types for managed-object queries and their results.

All types are frozen dataclasses so that references, queries and
results can be shared freely without defensive copying.  Attribute
values are whatever the wire codec decoded: plain Python scalars,
lists, dicts, or nested ``ObjectReference`` values.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from moquery.types.selection import SelectionSpec, TraversalSpec

# ---------------------------------------------------------------------------
# References and queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ObjectReference:
    """Identifies a managed object in the remote inventory.

    Parameters
    ----------
    kind:
        The managed object type, e.g. ``"VirtualMachine"``.
    id:
        The server-assigned identifier, e.g. ``"vm-42"``.
    """

    kind: str
    id: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    """The attributes to retrieve for objects of a single kind.

    ``paths=None`` requests every attribute.  Otherwise the path
    sequence is sent verbatim: no deduplication, no syntax checks.
    """

    kind: str
    paths: tuple[str, ...] | None = None

    @property
    def all_attributes(self) -> bool:
        """Return True if every attribute of the kind is requested."""
        return self.paths is None


@dataclass(frozen=True, slots=True)
class ObjectQuery:
    """A starting object plus the selection rules that widen it.

    Parameters
    ----------
    obj:
        The object the query starts from.
    select_set:
        Traversal rule table applied from ``obj``.  Empty means the
        query covers ``obj`` only.
    skip:
        When ``True`` the starting object itself is excluded from the
        result and only objects reached by traversal are reported.
    """

    obj: ObjectReference
    select_set: tuple[Union[TraversalSpec, SelectionSpec], ...] = ()
    skip: bool = False


@dataclass(frozen=True, slots=True)
class QueryBatch:
    """An ordered set of object queries sharing one attribute spec."""

    queries: tuple[ObjectQuery, ...]
    attributes: AttributeSpec

    @property
    def objects(self) -> tuple[ObjectReference, ...]:
        """Return the starting reference of every query, in order."""
        return tuple(q.obj for q in self.queries)


# ---------------------------------------------------------------------------
# Retrieval results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeRecord:
    """The attributes returned for one object.

    Parameters
    ----------
    obj:
        The object these attributes belong to.
    attributes:
        Attribute path to decoded value.
    missing:
        Attribute path to the server's fault payload for attributes the
        server could not read.  Passed through unchanged.
    """

    obj: ObjectReference
    attributes: Mapping[str, Any] = field(default_factory=dict)
    missing: Mapping[str, Any] = field(default_factory=dict)

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at ``path``, or ``default`` when absent."""
        return self.attributes.get(path, default)

    def __contains__(self, path: object) -> bool:
        return path in self.attributes


# ---------------------------------------------------------------------------
# Change notifications
# ---------------------------------------------------------------------------


class ChangeOp(Enum):
    """How a property changed between two versions."""

    ADD = "add"
    REMOVE = "remove"
    ASSIGN = "assign"
    INDIRECT_REMOVE = "indirectRemove"


class UpdateKind(Enum):
    """How an object relates to a filter in an update."""

    ENTER = "enter"
    LEAVE = "leave"
    MODIFY = "modify"


@dataclass(frozen=True, slots=True)
class PropertyChange:
    """A single property change: path, operation and new value."""

    name: str
    op: ChangeOp
    value: Any = None


@dataclass(frozen=True, slots=True)
class ObjectUpdate:
    """All changes reported for one object in one update round."""

    obj: ObjectReference
    kind: UpdateKind
    changes: tuple[PropertyChange, ...] = ()


@dataclass(frozen=True, slots=True)
class FilterUpdate:
    """Object updates produced by one server-side filter."""

    filter: ObjectReference
    object_set: tuple[ObjectUpdate, ...] = ()


@dataclass(frozen=True, slots=True)
class UpdateSet:
    """The result of a single ``WaitForUpdates`` call.

    Parameters
    ----------
    version:
        Cursor to send on the next call to receive only newer deltas.
    filter_set:
        Updates grouped by the filter that produced them.
    """

    version: str
    filter_set: tuple[FilterUpdate, ...] = ()

    def object_updates(self) -> Iterator[ObjectUpdate]:
        """Yield every object update across all filters, in server order."""
        for filter_update in self.filter_set:
            yield from filter_update.object_set

    def updates_for(self, obj: ObjectReference) -> Iterator[Sequence[PropertyChange]]:
        """Yield the change sequences reported for ``obj`` and nothing else."""
        for update in self.object_updates():
            if update.obj == obj:
                yield update.changes
