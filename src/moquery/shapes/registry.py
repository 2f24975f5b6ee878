"""Shape registry for moquery.

Maps shape names to :class:`~moquery.shapes.base.RecordShape` classes.
Third-party packages can contribute shapes by declaring entry-points in
their own ``pyproject.toml`` under the "moquery.shapes" group.

Example
-------
Register a shape with the decorator::

    from moquery.shapes import RecordShape, shape_registry

    @shape_registry.register("HostSystem")
    @dataclass(frozen=True)
    class Host(RecordShape):
        ref: ObjectReference
        name: str
        attribute_paths = ("name",)

        @classmethod
        def from_record(cls, record):
            return cls(ref=record.obj, name=record.get("name"))

Retrieve a shape by name::

    cls = shape_registry.get("HostSystem")
    hosts = fetcher.fetch_as(batch, cls)
"""
from __future__ import annotations

import importlib.metadata
import logging
from collections.abc import Callable

from moquery.shapes.base import RecordShape

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "moquery.shapes"


class ShapeNotFoundError(KeyError):
    """Raised when a requested shape name is not in the registry."""

    def __init__(self, name: str) -> None:
        self.shape_name = name
        super().__init__(
            f"Shape {name!r} is not registered. "
            "Check that the package providing it is installed and its entry-points are declared."
        )


class ShapeAlreadyRegisteredError(ValueError):
    """Raised when attempting to register a name that already exists."""

    def __init__(self, name: str) -> None:
        self.shape_name = name
        super().__init__(
            f"Shape {name!r} is already registered. "
            "Use a unique name or explicitly deregister the existing entry first."
        )


class ShapeRegistry:
    """Registry of record shapes keyed by name."""

    def __init__(self) -> None:
        self._shapes: dict[str, type[RecordShape]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str) -> Callable[[type[RecordShape]], type[RecordShape]]:
        """Return a class decorator that registers the decorated shape.

        Raises
        ------
        ShapeAlreadyRegisteredError
            If ``name`` is already in use.
        TypeError
            If the decorated class does not subclass ``RecordShape``.
        """

        def decorator(cls: type[RecordShape]) -> type[RecordShape]:
            self.register_class(name, cls)
            return cls

        return decorator

    def register_class(self, name: str, cls: type[RecordShape]) -> None:
        """Register ``cls`` under ``name`` without the decorator syntax."""
        if name in self._shapes:
            raise ShapeAlreadyRegisteredError(name)
        if not (isinstance(cls, type) and issubclass(cls, RecordShape)):
            raise TypeError(
                f"Cannot register {cls!r} under {name!r}: it must be a subclass of RecordShape."
            )
        self._shapes[name] = cls
        logger.debug("Registered shape %r -> %s", name, cls.__qualname__)

    def deregister(self, name: str) -> None:
        """Remove a shape from the registry.

        Raises
        ------
        ShapeNotFoundError
            If ``name`` is not currently registered.
        """
        if name not in self._shapes:
            raise ShapeNotFoundError(name)
        del self._shapes[name]
        logger.debug("Deregistered shape %r", name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> type[RecordShape]:
        """Return the shape class registered under ``name``."""
        try:
            return self._shapes[name]
        except KeyError:
            raise ShapeNotFoundError(name) from None

    def resolve(self, shape: str | type[RecordShape]) -> type[RecordShape]:
        """Accept a shape name or class and return the class."""
        if isinstance(shape, str):
            return self.get(shape)
        return shape

    def list_shapes(self) -> list[str]:
        """Return all registered shape names in alphabetical order."""
        return sorted(self._shapes)

    def __contains__(self, name: object) -> bool:
        return name in self._shapes

    def __len__(self) -> int:
        return len(self._shapes)

    def __repr__(self) -> str:
        return f"ShapeRegistry(shapes={self.list_shapes()})"

    # ------------------------------------------------------------------
    # Entry-point loading
    # ------------------------------------------------------------------

    def load_entrypoints(self, group: str = ENTRY_POINT_GROUP) -> None:
        """Discover and register shapes declared as package entry-points.

        Entry points whose name is already registered are skipped, which
        makes repeated calls idempotent.  Entry points that fail to load
        or are not shapes are logged and skipped.
        """
        for ep in importlib.metadata.entry_points(group=group):
            if ep.name in self._shapes:
                logger.debug("Entry-point %r already registered; skipping.", ep.name)
                continue
            try:
                cls = ep.load()
            except Exception:
                logger.exception(
                    "Failed to load entry-point %r from group %r; skipping.", ep.name, group
                )
                continue
            try:
                self.register_class(ep.name, cls)
            except (ShapeAlreadyRegisteredError, TypeError):
                logger.warning(
                    "Entry-point %r loaded but is not a record shape; skipping.", ep.name
                )
