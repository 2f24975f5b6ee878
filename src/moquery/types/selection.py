"""Selection rules: declarative traversal instructions.

A select set is a small rule table.  ``TraversalSpec`` entries define
named rules ("from objects of *kind*, follow *path*"); ``SelectionSpec``
entries refer to a rule by name, which is how a rule recurses into
itself without the structure itself being recursive.

Example
-------
::

    rule = parent_traversal()
    # TraversalSpec(name='traverseParent', kind='ManagedEntity',
    #               path='parent',
    #               select_set=(SelectionSpec(name='traverseParent'),))
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from moquery.errors import SelectionRuleError

TRAVERSE_PARENT = "traverseParent"


@dataclass(frozen=True, slots=True)
class SelectionSpec:
    """A by-name reference to a traversal rule."""

    name: str


@dataclass(frozen=True, slots=True)
class TraversalSpec:
    """A named rule that follows ``path`` on objects of ``kind``.

    Parameters
    ----------
    name:
        Rule name other entries may refer to.
    kind:
        Object kind the rule applies to.
    path:
        Reference-valued attribute to follow.
    skip:
        When ``True`` objects reached by this rule are traversed but not
        reported.
    select_set:
        Rules applied to the objects this rule reaches.
    """

    name: str
    kind: str
    path: str
    skip: bool = False
    select_set: tuple[Union["TraversalSpec", SelectionSpec], ...] = ()


Selection = Union[TraversalSpec, SelectionSpec]


def parent_traversal(kind: str = "ManagedEntity") -> TraversalSpec:
    """Return the rule that follows ``parent`` until no parent is left."""
    return TraversalSpec(
        name=TRAVERSE_PARENT,
        kind=kind,
        path="parent",
        skip=False,
        select_set=(SelectionSpec(name=TRAVERSE_PARENT),),
    )


def _walk(select_set: Iterable[Selection]) -> Iterable[Selection]:
    for selection in select_set:
        yield selection
        if isinstance(selection, TraversalSpec):
            yield from _walk(selection.select_set)


def validate_select_set(select_set: Iterable[Selection]) -> None:
    """Check that a rule table is self-consistent.

    Every traversal rule name must be unique, and every by-name
    reference must resolve to a traversal rule defined somewhere in the
    same table.

    Raises
    ------
    SelectionRuleError
        If a rule is defined twice or a reference is dangling.
    """
    defined: set[str] = set()
    referenced: list[str] = []
    for selection in _walk(select_set):
        if isinstance(selection, TraversalSpec):
            if selection.name in defined:
                raise SelectionRuleError(
                    f"Traversal rule {selection.name!r} is defined more than once."
                )
            defined.add(selection.name)
        elif isinstance(selection, SelectionSpec):
            referenced.append(selection.name)
        else:
            raise SelectionRuleError(f"Unknown selection type: {type(selection)}")

    for name in referenced:
        if name not in defined:
            raise SelectionRuleError(
                f"Selection refers to undefined traversal rule {name!r}."
            )
