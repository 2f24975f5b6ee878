"""Scripted invoker for tests, examples and offline replays.

``ScriptedInvoker`` answers each wire method from its own queue of
canned responses and records every request it receives, so tests
never depend on a live service.

A session script maps wire methods to the responses to return, in
order::

    RetrieveProperties:
      - returnval:
          - obj: {kind: ManagedObjectReference, type: Folder, value: group-d1}
            propSet:
              - {name: name, val: Datacenters}
    WaitForUpdates:
      - returnval: {version: "1", filterSet: []}
      - transport_error: connection reset

A ``transport_error`` entry is raised as :class:`TransportError` instead
of being returned.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict, deque
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Union

import yaml

from moquery.errors import TransportError
from moquery.transport.cancel import CancellationToken

logger = logging.getLogger(__name__)

Response = Union[
    Mapping[str, Any],
    BaseException,
    Callable[[dict[str, Any]], Mapping[str, Any]],
]


class ScriptedInvoker:
    """Deterministic :class:`~moquery.transport.invoker.Invoker` double.

    Each queued response is one of:

    - a mapping, returned as the response payload;
    - an exception instance, raised from :meth:`invoke`;
    - a callable, called with the request and its result returned.

    Parameters
    ----------
    script:
        Optional initial mapping of wire method to responses.
    """

    def __init__(self, script: Mapping[str, Iterable[Response]] | None = None) -> None:
        self._queues: dict[str, deque[Response]] = defaultdict(deque)
        self._calls: list[dict[str, Any]] = []
        for method, responses in (script or {}).items():
            self.add_responses(method, responses)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, text: str) -> "ScriptedInvoker":
        """Build an invoker from a YAML (or JSON) session script."""
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("A session script must be a mapping of method to responses.")
        return cls({method: [_from_script(r) for r in entries] for method, entries in data.items()})

    @classmethod
    def from_file(cls, path: str | Path) -> "ScriptedInvoker":
        """Build an invoker from a ``.yaml``/``.yml`` or ``.json`` script file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
            return cls({method: [_from_script(r) for r in entries] for method, entries in data.items()})
        return cls.from_yaml(text)

    def add_response(self, method: str, response: Response) -> None:
        """Queue one response for ``method``."""
        self._queues[method].append(response)

    def add_responses(self, method: str, responses: Iterable[Response]) -> None:
        """Queue several responses for ``method``, in order."""
        for response in responses:
            self.add_response(method, response)

    # ------------------------------------------------------------------
    # Invoker protocol
    # ------------------------------------------------------------------

    def invoke(
        self, request: dict[str, Any], cancel: CancellationToken | None = None
    ) -> dict[str, Any]:
        """Record ``request`` and answer it from the method's queue.

        Raises
        ------
        OperationCancelledError
            If ``cancel`` is already cancelled; the request is still recorded.
        TransportError
            If no response is queued for the request's method.
        """
        method = request.get("method", "")
        self._calls.append(request)
        logger.debug("Scripted call #%d: %s", len(self._calls), method)
        if cancel is not None:
            cancel.raise_if_cancelled()

        queue = self._queues.get(method)
        if not queue:
            raise TransportError(f"No scripted response left for {method!r}.")
        response = queue.popleft()
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(request)
        return dict(response)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def calls(self) -> list[dict[str, Any]]:
        """Return every request received so far, in order."""
        return list(self._calls)

    @property
    def call_count(self) -> int:
        """Return the number of requests received so far."""
        return len(self._calls)

    def calls_for(self, method: str) -> list[dict[str, Any]]:
        """Return the requests received for ``method``, in order."""
        return [c for c in self._calls if c.get("method") == method]

    def pending(self, method: str) -> int:
        """Return how many responses are still queued for ``method``."""
        return len(self._queues.get(method, ()))

    def reset_calls(self) -> None:
        """Forget the recorded requests; queued responses are kept."""
        self._calls.clear()


def _from_script(entry: Any) -> Response:
    if isinstance(entry, dict) and "transport_error" in entry:
        return TransportError(str(entry["transport_error"]))
    if not isinstance(entry, dict):
        raise ValueError(f"Scripted response must be a mapping, got {type(entry).__name__}.")
    return entry
