"""moquery: property retrieval and change notification for managed-object inventories.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import moquery

    vm = moquery.ObjectReference("VirtualMachine", "vm-42")

    # Batched property retrieval
    batch = moquery.build_batch([vm], ["name", "runtime.powerState"])
    records = moquery.fetch(invoker, batch)

    # Root-first ancestry
    chain = moquery.ancestors(invoker, vm)

    # Block until the VM is powered on
    moquery.wait_for_properties(
        invoker,
        vm,
        ["runtime.powerState"],
        lambda changes: any(c.value == "poweredOn" for c in changes),
    )

    moquery.__version__
    '0.1.0'
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from moquery.client import Client, ServiceContent
from moquery.errors import (
    CollectorStateError,
    InconsistentAncestryError,
    MoQueryError,
    OperationCancelledError,
    ProtocolError,
    RecordShapeError,
    SelectionRuleError,
    ServerFault,
    TransportError,
    TypeMismatchError,
)
from moquery.transport import CancellationToken, Invoker, ScriptedInvoker
from moquery.types import AttributeRecord, ObjectReference, PropertyChange, QueryBatch

__version__: str = "0.1.0"

if TYPE_CHECKING:
    from moquery.collector.waiter import Predicate
    from moquery.shapes.base import Entity


def build_batch(
    refs: Iterable[ObjectReference], attrs: Sequence[str] | None = None
) -> QueryBatch:
    """Build a query batch for references of a single kind.

    Raises
    ------
    moquery.errors.TypeMismatchError
        If ``refs`` mixes kinds.
    """
    from moquery.builder.builder import build_batch as _build_batch

    return _build_batch(refs, attrs)


def fetch(invoker: Invoker, batch: QueryBatch) -> list[AttributeRecord]:
    """Retrieve ``batch`` through ``invoker`` with the default root collector."""
    from moquery.fetcher.fetcher import PropertyFetcher

    return PropertyFetcher(invoker).fetch(batch)


def ancestors(invoker: Invoker, obj: ObjectReference) -> list["Entity"]:
    """Return the ancestry of ``obj``, root first and ``obj`` last.

    Raises
    ------
    moquery.errors.InconsistentAncestryError
        If the fetched records do not form one chain.
    """
    return Client(invoker).ancestors(obj)


def wait_for_properties(
    invoker: Invoker,
    obj: ObjectReference,
    paths: Sequence[str],
    predicate: "Predicate",
    cancel: CancellationToken | None = None,
) -> None:
    """Block until ``predicate`` accepts a change set for ``obj``."""
    from moquery.collector.waiter import wait_for_properties as _wait

    _wait(invoker, obj, paths, predicate, cancel=cancel)


__all__ = [
    "__version__",
    # Operations
    "build_batch",
    "fetch",
    "ancestors",
    "wait_for_properties",
    # Client
    "Client",
    "ServiceContent",
    # Types
    "ObjectReference",
    "QueryBatch",
    "AttributeRecord",
    "PropertyChange",
    # Transport
    "Invoker",
    "CancellationToken",
    "ScriptedInvoker",
    # Errors
    "MoQueryError",
    "TypeMismatchError",
    "TransportError",
    "ServerFault",
    "ProtocolError",
    "InconsistentAncestryError",
    "CollectorStateError",
    "SelectionRuleError",
    "RecordShapeError",
    "OperationCancelledError",
]
