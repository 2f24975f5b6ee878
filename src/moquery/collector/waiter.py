"""Wait for a condition on one object's properties."""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from moquery.collector.collector import PropertyCollector
from moquery.fetcher.fetcher import DEFAULT_PROPERTY_COLLECTOR
from moquery.transport.cancel import CancellationToken
from moquery.transport.invoker import Invoker
from moquery.types import (
    AttributeSpec,
    ObjectQuery,
    ObjectReference,
    PropertyChange,
    QueryBatch,
)
from moquery.wire.codec import WireCodec

logger = logging.getLogger(__name__)

Predicate = Callable[[Sequence[PropertyChange]], bool]


class ChangeWaiter:
    """Drives a fresh property collector until a predicate is satisfied.

    Each :meth:`wait` call creates its own collector, registers a filter
    on the target object and polls from an empty version.  The loop has
    no built-in bound: it ends when the predicate returns ``True``, when
    a call fails, or when ``cancel`` is cancelled.  The collector is
    destroyed on every one of those exits.  A failing release never
    replaces the error that ended the wait; after a satisfied predicate
    it is logged and ignored.

    Parameters
    ----------
    invoker:
        The call primitive.
    root:
        Reference of the root property collector.
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

    def wait(
        self,
        obj: ObjectReference,
        paths: Sequence[str],
        predicate: Predicate,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Block until ``predicate`` accepts a change set for ``obj``.

        Parameters
        ----------
        obj:
            The object to watch.
        paths:
            Attribute paths to watch on ``obj``.
        predicate:
            Called with the changes reported for ``obj`` in each round
            that has any.  Changes for other objects are never passed.
        cancel:
            Optional token checked before every round and handed to the
            invoker so an in-flight poll can be aborted.

        Raises
        ------
        OperationCancelledError
            If ``cancel`` was cancelled.
        """
        spec = QueryBatch(
            queries=(ObjectQuery(obj=obj),),
            attributes=AttributeSpec(kind=obj.kind, paths=tuple(paths)),
        )
        if cancel is not None:
            cancel.raise_if_cancelled()
        collector = PropertyCollector(self._invoker, self._root, self._codec)
        collector.create(cancel)
        try:
            collector.create_filter(spec, cancel=cancel)
            self._poll(collector, obj, predicate, cancel)
        except BaseException:
            self._release_after_failure(collector)
            raise

        try:
            collector.destroy()
        except Exception:
            logger.warning(
                "Condition on %s was met but releasing %s failed; ignoring.",
                obj,
                collector.handle,
                exc_info=True,
            )

    def _poll(
        self,
        collector: PropertyCollector,
        obj: ObjectReference,
        predicate: Predicate,
        cancel: CancellationToken | None,
    ) -> None:
        version = ""
        rounds = 0
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            update_set = collector.wait_for_updates(version, cancel)
            rounds += 1
            version = update_set.version
            logger.debug("Round %d advanced %s to version %r", rounds, obj, version)

            for changes in update_set.updates_for(obj):
                if predicate(changes):
                    logger.debug("Condition on %s met after %d round(s)", obj, rounds)
                    return

    def _release_after_failure(self, collector: PropertyCollector) -> None:
        # The in-flight error is what the caller sees.
        try:
            collector.destroy()
        except Exception:
            logger.debug(
                "Releasing %s after a failed wait also failed", collector.handle, exc_info=True
            )


def wait_for_properties(
    invoker: Invoker,
    obj: ObjectReference,
    paths: Sequence[str],
    predicate: Predicate,
    cancel: CancellationToken | None = None,
) -> None:
    """Convenience wrapper around :meth:`ChangeWaiter.wait`."""
    ChangeWaiter(invoker).wait(obj, paths, predicate, cancel=cancel)
