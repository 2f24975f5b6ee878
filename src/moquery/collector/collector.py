"""Client-side handle on a server-owned property collector.

The server owns the collector and every filter registered on it.  A
``PropertyCollector`` only holds the server's reference plus a state
tag, and must release the server resource with :meth:`destroy` on every
exit path.  Using it as a context manager does that structurally::

    with PropertyCollector(invoker) as pc:
        pc.create_filter(batch)
        updates = pc.wait_for_updates("")
"""
from __future__ import annotations

import logging
from enum import Enum, auto
from types import TracebackType

from moquery.errors import CollectorStateError
from moquery.fetcher.fetcher import DEFAULT_PROPERTY_COLLECTOR
from moquery.transport.cancel import CancellationToken
from moquery.transport.invoker import Invoker
from moquery.types import ObjectReference, QueryBatch, UpdateSet, validate_select_set
from moquery.wire.codec import (
    CREATE_FILTER,
    CREATE_PROPERTY_COLLECTOR,
    DESTROY_PROPERTY_COLLECTOR,
    WireCodec,
)

logger = logging.getLogger(__name__)


class CollectorState(Enum):
    """Lifecycle of a :class:`PropertyCollector`."""

    UNINITIALIZED = auto()
    ACTIVE = auto()
    DESTROYED = auto()


class PropertyCollector:
    """A change-filter collector created from the root property collector.

    Parameters
    ----------
    invoker:
        The call primitive.
    root:
        Reference of the root property collector new collectors are
        created from.
    codec:
        Wire codec; a default ``WireCodec`` is used when omitted.
    """

    def __init__(
        self,
        invoker: Invoker,
        root: ObjectReference = DEFAULT_PROPERTY_COLLECTOR,
        codec: WireCodec | None = None,
    ) -> None:
        self._invoker = invoker
        self._root = root
        self._codec = codec or WireCodec()
        self._handle: ObjectReference | None = None
        self._state = CollectorState.UNINITIALIZED

    @property
    def state(self) -> CollectorState:
        return self._state

    @property
    def handle(self) -> ObjectReference | None:
        """Return the server's reference for this collector, once created."""
        return self._handle

    def _require_active(self, operation: str) -> ObjectReference:
        if self._state is not CollectorState.ACTIVE or self._handle is None:
            raise CollectorStateError(operation, self._state.name)
        return self._handle

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, cancel: CancellationToken | None = None) -> ObjectReference:
        """Create the server-side collector and return its reference.

        Raises
        ------
        CollectorStateError
            If the collector was already created or destroyed.
        """
        if self._state is not CollectorState.UNINITIALIZED:
            raise CollectorStateError("create", self._state.name)
        response = self._invoker.invoke(self._codec.create_property_collector(self._root), cancel)
        self._handle = self._codec.decode_reference_result(CREATE_PROPERTY_COLLECTOR, response)
        self._state = CollectorState.ACTIVE
        logger.debug("Created property collector %s", self._handle)
        return self._handle

    def destroy(self) -> None:
        """Release the server-side collector.

        Safe to call in any state and any number of times; only the
        first call on an active collector reaches the server.  The state
        becomes ``DESTROYED`` before the release call is issued, so a
        failed release is reported once and never repeated.
        """
        if self._state is CollectorState.DESTROYED:
            return
        handle = self._handle
        was_active = self._state is CollectorState.ACTIVE
        self._state = CollectorState.DESTROYED
        if not was_active or handle is None:
            logger.debug("Destroyed property collector that was never created")
            return
        logger.debug("Destroying property collector %s", handle)
        response = self._invoker.invoke(self._codec.destroy_property_collector(handle))
        self._codec.unwrap(DESTROY_PROPERTY_COLLECTOR, response)

    def __enter__(self) -> "PropertyCollector":
        if self._state is CollectorState.UNINITIALIZED:
            self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()

    # ------------------------------------------------------------------
    # Filters and updates
    # ------------------------------------------------------------------

    def create_filter(
        self,
        spec: QueryBatch,
        partial_updates: bool = False,
        cancel: CancellationToken | None = None,
    ) -> ObjectReference:
        """Register interest in the objects and attributes of ``spec``.

        Returns
        -------
        ObjectReference
            The server's reference for the new filter.  The filter is
            released together with the collector.
        """
        handle = self._require_active("create a filter on")
        for query in spec.queries:
            validate_select_set(query.select_set)
        response = self._invoker.invoke(
            self._codec.create_filter(handle, spec, partial_updates=partial_updates), cancel
        )
        filter_ref = self._codec.decode_reference_result(CREATE_FILTER, response)
        logger.debug("Created filter %s on %s", filter_ref, handle)
        return filter_ref

    def wait_for_updates(
        self, version: str = "", cancel: CancellationToken | None = None
    ) -> UpdateSet:
        """Block until the server reports changes newer than ``version``.

        This is a long poll: the call returns only when the server has
        something to report.  An empty ``version`` asks for the full
        current state.  Pass ``cancel`` to let the invoker abort the
        in-flight call.
        """
        handle = self._require_active("wait for updates on")
        logger.debug("WaitForUpdates on %s from version %r", handle, version)
        response = self._invoker.invoke(self._codec.wait_for_updates(handle, version), cancel)
        return self._codec.decode_update_set(response)

    def __repr__(self) -> str:
        return f"PropertyCollector(handle={self._handle}, state={self._state.name})"
