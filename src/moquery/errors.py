"""Exception types raised by moquery.

Every error the package raises derives from ``MoQueryError`` and also
from the closest builtin exception, so callers can catch either the
package-specific type or a generic one.  Errors coming from the call
primitive are never wrapped: whatever the invoker raises reaches the
caller unchanged.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from moquery.types import ObjectReference


class MoQueryError(Exception):
    """Base class for all moquery errors."""


class TypeMismatchError(MoQueryError, TypeError):
    """Raised when a batch mixes object references of different kinds.

    Parameters
    ----------
    expected:
        The kind fixed by the first reference of the batch.
    found:
        The offending reference's kind.
    """

    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Object references must have the same kind: batch is scoped to "
            f"{expected!r} but got a reference of kind {found!r}."
        )


class TransportError(MoQueryError, ConnectionError):
    """Raised by invokers when a request could not be delivered."""


class ProtocolError(MoQueryError, ValueError):
    """Raised when a response payload does not have the expected shape."""


class ServerFault(MoQueryError):
    """The remote service answered with a fault.

    The fault payload is kept exactly as received.

    Parameters
    ----------
    method:
        Wire method of the rejected request.
    code:
        Fault code reported by the server.
    message:
        Fault string reported by the server.
    detail:
        Optional structured fault detail.
    """

    def __init__(
        self, method: str, code: str, message: str, detail: Any = None
    ) -> None:
        self.method = method
        self.code = code
        self.message = message
        self.detail = detail
        super().__init__(f"{method} failed with {code}: {message}")


class InconsistentAncestryError(MoQueryError):
    """Fetched ancestry records do not form a single parent chain."""

    def __init__(self, obj: "ObjectReference", reason: str) -> None:
        self.obj = obj
        self.reason = reason
        super().__init__(f"Cannot reconstruct ancestry of {obj}: {reason}")


class CollectorStateError(MoQueryError, RuntimeError):
    """An operation was attempted in a collector state that forbids it."""

    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(
            f"Cannot {operation} a property collector in state {state}."
        )


class SelectionRuleError(MoQueryError, ValueError):
    """A selection rule table references an undefined or duplicate rule."""


class RecordShapeError(MoQueryError, ValueError):
    """An attribute record cannot be mapped onto the requested shape."""


class OperationCancelledError(MoQueryError):
    """The operation was cancelled through a ``CancellationToken``."""
