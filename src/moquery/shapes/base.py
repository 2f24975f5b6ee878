"""Typed views over generic attribute records.

A *shape* is a class that knows how to read one kind of
:class:`~moquery.types.AttributeRecord` into a typed object.  Mapping
happens once, at the fetch boundary, so algorithms downstream work on
typed values instead of probing dicts.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from moquery.errors import RecordShapeError
from moquery.types import AttributeRecord, ObjectReference

S = TypeVar("S", bound="RecordShape")


class RecordShape(ABC):
    """Base class for record-to-object mappings."""

    #: Attribute paths a fetch must request for this shape.
    attribute_paths: tuple[str, ...] = ()

    @classmethod
    @abstractmethod
    def from_record(cls: type[S], record: AttributeRecord) -> S:
        """Build an instance from ``record``.

        Raises
        ------
        RecordShapeError
            If the record lacks an attribute the shape requires.
        """


@runtime_checkable
class HasParentAndName(Protocol):
    """Capability required by ancestry reconstruction."""

    @property
    def self_ref(self) -> ObjectReference: ...  # pragma: no cover

    @property
    def parent(self) -> ObjectReference | None: ...  # pragma: no cover

    @property
    def name(self) -> str: ...  # pragma: no cover


@dataclass(frozen=True, slots=True)
class Entity(RecordShape):
    """An inventory entity: itself, its parent (if any) and its name."""

    self_ref: ObjectReference
    parent: ObjectReference | None
    name: str

    attribute_paths = ("name", "parent")

    @classmethod
    def from_record(cls, record: AttributeRecord) -> "Entity":
        if "name" not in record:
            raise RecordShapeError(f"Record for {record.obj} has no 'name' attribute.")
        parent = record.get("parent")
        if parent is not None and not isinstance(parent, ObjectReference):
            raise RecordShapeError(
                f"Record for {record.obj} has a non-reference parent: {parent!r}"
            )
        name = record.get("name")
        if name is None:
            raise RecordShapeError(f"Record for {record.obj} has a null 'name' attribute.")
        return cls(self_ref=record.obj, parent=parent, name=str(name))

    @property
    def is_root(self) -> bool:
        """Return True if the entity has no parent."""
        return self.parent is None
