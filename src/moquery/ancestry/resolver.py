"""Ancestry resolution for inventory entities.

One ``RetrieveProperties`` call fetches an object together with every
entity on its ``parent`` chain (the query follows a self-referencing
"traverseParent" rule).  The server returns those records in no
particular order; :meth:`AncestryResolver.resolve` puts them back in
root-first order.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TypeVar

from moquery.errors import InconsistentAncestryError
from moquery.fetcher.fetcher import PropertyFetcher
from moquery.shapes.base import Entity, HasParentAndName
from moquery.transport.cancel import CancellationToken
from moquery.types import (
    AttributeSpec,
    ObjectQuery,
    ObjectReference,
    QueryBatch,
    parent_traversal,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=HasParentAndName)

ENTITY_KIND = "ManagedEntity"


def ancestry_batch(obj: ObjectReference) -> QueryBatch:
    """Return the batch that fetches ``obj`` and all of its ancestors."""
    return QueryBatch(
        queries=(ObjectQuery(obj=obj, select_set=(parent_traversal(ENTITY_KIND),)),),
        attributes=AttributeSpec(kind=ENTITY_KIND, paths=Entity.attribute_paths),
    )


def order_chain(obj: ObjectReference, records: Sequence[E]) -> list[E]:
    """Arrange ``records`` root-first along their parent links.

    The first pick is the record without a parent; every later pick is
    the record whose parent is the last record picked.  At most
    ``len(records)`` rounds run.

    Raises
    ------
    InconsistentAncestryError
        If the records are not exactly one simple chain ending at ``obj``:
        no records, no root or several roots, a duplicated reference, a
        record the chain never reaches (records on a cycle included), or
        a branch.
    """
    if not records:
        raise InconsistentAncestryError(obj, "no records were returned")

    refs = [r.self_ref for r in records]
    if len(set(refs)) != len(refs):
        raise InconsistentAncestryError(obj, "a record appears more than once")

    roots = [r for r in records if r.parent is None]
    if not roots:
        raise InconsistentAncestryError(obj, "no root record (every record has a parent)")
    if len(roots) > 1:
        raise InconsistentAncestryError(
            obj, f"{len(roots)} root records: {', '.join(str(r.self_ref) for r in roots)}"
        )

    out: list[E] = [roots[0]]
    while len(out) < len(records):
        last = out[-1].self_ref
        children = [r for r in records if r.parent == last]
        if not children:
            raise InconsistentAncestryError(
                obj, f"{len(records) - len(out)} record(s) are not reachable from {last}"
            )
        if len(children) > 1:
            raise InconsistentAncestryError(obj, f"{last} has more than one child in the chain")
        out.append(children[0])

    if out[-1].self_ref != obj:
        raise InconsistentAncestryError(obj, f"chain ends at {out[-1].self_ref}")
    return out


class AncestryResolver:
    """Fetches and orders the ancestry of inventory entities.

    Parameters
    ----------
    fetcher:
        Fetcher used for the single retrieval call.
    """

    def __init__(self, fetcher: PropertyFetcher) -> None:
        self._fetcher = fetcher

    def resolve(
        self, obj: ObjectReference, cancel: CancellationToken | None = None
    ) -> list[Entity]:
        """Return the entities from the root down to ``obj`` itself.

        The first element is the root, the last element is ``obj``.

        Raises
        ------
        InconsistentAncestryError
            If the fetched records do not form one chain.
        ServerFault
            If the server rejected the request.
        """
        entities = self._fetcher.fetch_as(ancestry_batch(obj), Entity, cancel)
        logger.debug("Ordering %d ancestry record(s) for %s", len(entities), obj)
        return order_chain(obj, entities)
