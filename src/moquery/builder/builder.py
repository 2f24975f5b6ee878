"""Batched property-query construction."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from moquery.errors import TypeMismatchError
from moquery.types import AttributeSpec, ObjectQuery, ObjectReference, QueryBatch

logger = logging.getLogger(__name__)


def build_batch(
    refs: Iterable[ObjectReference], attrs: Sequence[str] | None = None
) -> QueryBatch:
    """Build one query batch covering every reference in ``refs``.

    The first reference fixes the kind the attribute spec is scoped to.

    Parameters
    ----------
    refs:
        References to query, all of the same kind.
    attrs:
        Attribute paths to retrieve.  ``None`` requests every attribute;
        any other sequence (including an empty one) is used verbatim.

    Returns
    -------
    QueryBatch
        The batch, with queries in the order the references were given.

    Raises
    ------
    TypeMismatchError
        As soon as a reference's kind differs from the first one's.
    ValueError
        If ``refs`` is empty.
    """
    queries: list[ObjectQuery] = []
    kind: str | None = None
    for ref in refs:
        if kind is None:
            kind = ref.kind
        elif ref.kind != kind:
            raise TypeMismatchError(expected=kind, found=ref.kind)
        queries.append(ObjectQuery(obj=ref))

    if kind is None:
        raise ValueError("Cannot build a query batch without object references.")

    paths = None if attrs is None else tuple(attrs)
    logger.debug(
        "Built batch of %d %s reference(s), attributes=%s",
        len(queries),
        kind,
        "all" if paths is None else list(paths),
    )
    return QueryBatch(queries=tuple(queries), attributes=AttributeSpec(kind=kind, paths=paths))
