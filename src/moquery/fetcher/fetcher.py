"""Batched property retrieval."""
from __future__ import annotations

import logging
from typing import TypeVar

from moquery.shapes import RecordShape, shape_registry
from moquery.shapes.registry import ShapeRegistry
from moquery.transport.cancel import CancellationToken
from moquery.transport.invoker import Invoker
from moquery.types import AttributeRecord, ObjectReference, QueryBatch, validate_select_set
from moquery.wire.codec import WireCodec

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=RecordShape)

DEFAULT_PROPERTY_COLLECTOR = ObjectReference(kind="PropertyCollector", id="propertyCollector")


class PropertyFetcher:
    """Issues one ``RetrieveProperties`` call per batch.

    There is no retry and no caching.  Transport errors and server
    faults reach the caller unchanged.

    Parameters
    ----------
    invoker:
        The call primitive.
    collector:
        Reference of the property collector the request is addressed to.
    codec:
        Wire codec; a default ``WireCodec`` is used when omitted.
    registry:
        Registry used to resolve shape names in :meth:`fetch_as`.
    """

    def __init__(
        self,
        invoker: Invoker,
        collector: ObjectReference = DEFAULT_PROPERTY_COLLECTOR,
        codec: WireCodec | None = None,
        registry: ShapeRegistry | None = None,
    ) -> None:
        self._invoker = invoker
        self._collector = collector
        self._codec = codec or WireCodec()
        self._registry = registry or shape_registry

    def fetch(
        self, batch: QueryBatch, cancel: CancellationToken | None = None
    ) -> list[AttributeRecord]:
        """Retrieve the attributes described by ``batch``.

        Returns
        -------
        list[AttributeRecord]
            One record per object the server reported, in server order.

        Raises
        ------
        SelectionRuleError
            If a query's rule table is inconsistent; no call is issued.
        ServerFault
            If the server rejected the request.
        """
        for query in batch.queries:
            validate_select_set(query.select_set)

        request = self._codec.retrieve_properties(self._collector, batch)
        logger.debug(
            "RetrieveProperties: %d quer%s on %s",
            len(batch.queries),
            "y" if len(batch.queries) == 1 else "ies",
            batch.attributes.kind,
        )
        response = self._invoker.invoke(request, cancel)
        records = self._codec.decode_retrieve_result(response)
        logger.debug("RetrieveProperties returned %d record(s)", len(records))
        return records

    def fetch_as(
        self,
        batch: QueryBatch,
        shape: str | type[S],
        cancel: CancellationToken | None = None,
    ) -> list[S]:
        """Retrieve ``batch`` and map every record onto ``shape``.

        ``shape`` may be a registered shape name or a shape class.

        Raises
        ------
        ShapeNotFoundError
            If ``shape`` is a name that is not registered.
        RecordShapeError
            If a record cannot be mapped.
        """
        cls = self._registry.resolve(shape)
        return [cls.from_record(r) for r in self.fetch(batch, cancel)]
