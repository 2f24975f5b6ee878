"""The call primitive moquery talks through.

moquery never opens connections, authenticates, or encodes anything
for the wire.  It shapes request payloads, hands them to an
``Invoker``, and demarshals whatever comes back.  Sessions, transport
encoding and retries belong to the invoker's implementation.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from moquery.transport.cancel import CancellationToken


@runtime_checkable
class Invoker(Protocol):
    """Protocol for synchronous request dispatchers.

    Implementations
    ---------------
    - :class:`~moquery.transport.scripted.ScriptedInvoker`: deterministic
      double for tests and examples.
    - Real transports are supplied by callers; this library ships none.
    """

    def invoke(
        self, request: dict[str, Any], cancel: CancellationToken | None = None
    ) -> dict[str, Any]:
        """Send ``request`` and return the decoded response payload.

        Parameters
        ----------
        request:
            Request payload built by :class:`~moquery.wire.codec.WireCodec`.
        cancel:
            Optional token.  Implementations that can abort an in-flight
            call should do so once it is cancelled.

        Returns
        -------
        dict[str, Any]
            ``{"returnval": ...}`` on success or ``{"fault": {...}}`` when
            the server rejected the request.

        Raises
        ------
        moquery.errors.TransportError
            If the request could not be delivered.
        """
        ...  # pragma: no cover
