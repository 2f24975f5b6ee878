"""Client façade over the call primitive.

``Client`` bundles an invoker with the service's root collector
reference and exposes the everyday operations: fetch properties of one
or many objects, wait for a property condition, and resolve an
object's ancestry.

Example
-------
::

    from moquery import Client, ObjectReference

    client = Client(invoker)
    vm = ObjectReference("VirtualMachine", "vm-42")
    records = client.properties(vm, ["name", "runtime.powerState"])
    chain = client.ancestors(vm)
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from moquery.ancestry.resolver import AncestryResolver
from moquery.builder.builder import build_batch
from moquery.collector.collector import PropertyCollector
from moquery.collector.waiter import ChangeWaiter, Predicate
from moquery.fetcher.fetcher import DEFAULT_PROPERTY_COLLECTOR, PropertyFetcher
from moquery.shapes.base import Entity
from moquery.transport.cancel import CancellationToken
from moquery.transport.invoker import Invoker
from moquery.types import AttributeRecord, ObjectReference
from moquery.wire.codec import WireCodec


@dataclass(frozen=True)
class ServiceContent:
    """Well-known service references the client addresses requests to."""

    property_collector: ObjectReference = DEFAULT_PROPERTY_COLLECTOR


class Client:
    """Synchronous façade over a single :class:`Invoker`.

    Parameters
    ----------
    invoker:
        The call primitive.  Wrap it to add behaviour such as
        re-authentication; the client never looks past it.
    service_content:
        Service references; defaults to the standard root collector.
    """

    def __init__(
        self, invoker: Invoker, service_content: ServiceContent | None = None
    ) -> None:
        self.invoker = invoker
        self.service_content = service_content or ServiceContent()
        self._codec = WireCodec()
        self._fetcher = PropertyFetcher(
            invoker, self.service_content.property_collector, self._codec
        )

    def properties(
        self, obj: ObjectReference, paths: Sequence[str] | None = None
    ) -> list[AttributeRecord]:
        """Fetch ``paths`` (or every attribute) of a single object."""
        return self.properties_n([obj], paths)

    def properties_n(
        self, objs: Iterable[ObjectReference], paths: Sequence[str] | None = None
    ) -> list[AttributeRecord]:
        """Fetch ``paths`` (or every attribute) of several objects of one kind.

        Raises
        ------
        TypeMismatchError
            If ``objs`` mixes kinds; no request is sent.
        """
        return self._fetcher.fetch(build_batch(objs, paths))

    def wait_for_properties(
        self,
        obj: ObjectReference,
        paths: Sequence[str],
        predicate: Predicate,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Block until ``predicate`` accepts a change set for ``obj``."""
        waiter = ChangeWaiter(self.invoker, self.service_content.property_collector, self._codec)
        waiter.wait(obj, paths, predicate, cancel=cancel)

    def ancestors(self, obj: ObjectReference) -> list[Entity]:
        """Return the ancestry of ``obj``, root first and ``obj`` last."""
        return AncestryResolver(self._fetcher).resolve(obj)

    def new_property_collector(self) -> PropertyCollector:
        """Create a new collector from the root collector.

        The returned collector is active; the caller must destroy it,
        typically by using it as a context manager.
        """
        collector = PropertyCollector(
            self.invoker, self.service_content.property_collector, self._codec
        )
        collector.create()
        return collector

    def __repr__(self) -> str:
        return f"Client(property_collector={self.service_content.property_collector})"
