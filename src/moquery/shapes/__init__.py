"""Record shapes and the default shape registry.

The default registry maps ``"ManagedEntity"`` to :class:`Entity`.
"""
from __future__ import annotations

from moquery.shapes.base import Entity, HasParentAndName, RecordShape
from moquery.shapes.registry import (
    ENTRY_POINT_GROUP,
    ShapeAlreadyRegisteredError,
    ShapeNotFoundError,
    ShapeRegistry,
)

shape_registry = ShapeRegistry()
shape_registry.register_class("ManagedEntity", Entity)

__all__ = [
    "RecordShape",
    "HasParentAndName",
    "Entity",
    "ShapeRegistry",
    "ShapeNotFoundError",
    "ShapeAlreadyRegisteredError",
    "ENTRY_POINT_GROUP",
    "shape_registry",
]
