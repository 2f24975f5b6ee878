"""Request shaping and response demarshaling.

``WireCodec`` converts moquery value types to the plain dict/list
payloads an :class:`~moquery.transport.invoker.Invoker` carries, and
converts response payloads back.  Union types carry a ``"kind"``
discriminator so decoding is unambiguous.

Usage
-----
::

    from moquery.wire.codec import WireCodec

    codec = WireCodec()
    request = codec.retrieve_properties(collector_ref, batch)
    records = codec.decode_retrieve_result(invoker.invoke(request))
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import yaml

from moquery.errors import ProtocolError, ServerFault
from moquery.types import (
    AttributeRecord,
    AttributeSpec,
    ChangeOp,
    FilterUpdate,
    ObjectQuery,
    ObjectReference,
    ObjectUpdate,
    PropertyChange,
    QueryBatch,
    Selection,
    SelectionSpec,
    TraversalSpec,
    UpdateKind,
    UpdateSet,
)

REFERENCE_KIND = "ManagedObjectReference"

RETRIEVE_PROPERTIES = "RetrieveProperties"
CREATE_PROPERTY_COLLECTOR = "CreatePropertyCollector"
CREATE_FILTER = "CreateFilter"
WAIT_FOR_UPDATES = "WaitForUpdates"
DESTROY_PROPERTY_COLLECTOR = "DestroyPropertyCollector"


class WireCodec:
    """Converts between moquery value types and wire payloads."""

    # ------------------------------------------------------------------
    # Requests (types → payload)
    # ------------------------------------------------------------------

    def retrieve_properties(self, this: ObjectReference, batch: QueryBatch) -> dict[str, Any]:
        """Shape a ``RetrieveProperties`` request for ``batch``."""
        return {
            "method": RETRIEVE_PROPERTIES,
            "this": self.encode_reference(this),
            "specSet": [self.encode_filter_spec(batch)],
        }

    def create_property_collector(self, this: ObjectReference) -> dict[str, Any]:
        return {"method": CREATE_PROPERTY_COLLECTOR, "this": self.encode_reference(this)}

    def create_filter(
        self, this: ObjectReference, batch: QueryBatch, partial_updates: bool = False
    ) -> dict[str, Any]:
        return {
            "method": CREATE_FILTER,
            "this": self.encode_reference(this),
            "spec": self.encode_filter_spec(batch),
            "partialUpdates": partial_updates,
        }

    def wait_for_updates(self, this: ObjectReference, version: str) -> dict[str, Any]:
        return {
            "method": WAIT_FOR_UPDATES,
            "this": self.encode_reference(this),
            "version": version,
        }

    def destroy_property_collector(self, this: ObjectReference) -> dict[str, Any]:
        return {"method": DESTROY_PROPERTY_COLLECTOR, "this": self.encode_reference(this)}

    def encode_reference(self, ref: ObjectReference) -> dict[str, str]:
        return {"kind": REFERENCE_KIND, "type": ref.kind, "value": ref.id}

    def encode_filter_spec(self, batch: QueryBatch) -> dict[str, Any]:
        return {
            "objectSet": [self._query_to_dict(q) for q in batch.queries],
            "propSet": [self._attributes_to_dict(batch.attributes)],
        }

    def _query_to_dict(self, query: ObjectQuery) -> dict[str, Any]:
        return {
            "obj": self.encode_reference(query.obj),
            "skip": query.skip,
            "selectSet": [self._selection_to_dict(s) for s in query.select_set],
        }

    def _attributes_to_dict(self, spec: AttributeSpec) -> dict[str, Any]:
        if spec.all_attributes:
            return {"type": spec.kind, "all": True}
        return {"type": spec.kind, "all": False, "pathSet": list(spec.paths or ())}

    def _selection_to_dict(self, selection: Selection) -> dict[str, Any]:
        if isinstance(selection, TraversalSpec):
            return {
                "kind": "TraversalSpec",
                "name": selection.name,
                "type": selection.kind,
                "path": selection.path,
                "skip": selection.skip,
                "selectSet": [self._selection_to_dict(s) for s in selection.select_set],
            }
        if isinstance(selection, SelectionSpec):
            return {"kind": "SelectionSpec", "name": selection.name}
        raise TypeError(f"Unknown selection type: {type(selection)}")

    # ------------------------------------------------------------------
    # Responses (payload → types)
    # ------------------------------------------------------------------

    def unwrap(self, method: str, response: Mapping[str, Any]) -> Any:
        """Return the ``returnval`` of ``response``.

        Raises
        ------
        ServerFault
            If the response carries a fault.
        ProtocolError
            If the response carries neither a fault nor a return value.
        """
        if not isinstance(response, Mapping):
            raise ProtocolError(f"{method} response must be a mapping, got {type(response).__name__}")
        fault = response.get("fault")
        if fault is not None:
            if not isinstance(fault, Mapping):
                raise ProtocolError(f"{method} fault must be a mapping")
            raise ServerFault(
                method=method,
                code=str(fault.get("faultCode", "")),
                message=str(fault.get("faultString", "")),
                detail=fault.get("detail"),
            )
        if "returnval" not in response:
            raise ProtocolError(f"{method} response has neither 'returnval' nor 'fault'")
        return response["returnval"]

    def decode_retrieve_result(self, response: Mapping[str, Any]) -> list[AttributeRecord]:
        """Demarshal a ``RetrieveProperties`` response, keeping server order."""
        contents = self.unwrap(RETRIEVE_PROPERTIES, response)
        if contents is None:
            return []
        if not isinstance(contents, list):
            raise ProtocolError("RetrieveProperties returnval must be a list")
        return [self._record_from_dict(c) for c in contents]

    def decode_reference_result(self, method: str, response: Mapping[str, Any]) -> ObjectReference:
        """Demarshal a response whose return value is a single reference."""
        value = self.unwrap(method, response)
        return self.decode_reference(value)

    def decode_update_set(self, response: Mapping[str, Any]) -> UpdateSet:
        """Demarshal a ``WaitForUpdates`` response."""
        data = self.unwrap(WAIT_FOR_UPDATES, response)
        if not isinstance(data, Mapping) or "version" not in data:
            raise ProtocolError("WaitForUpdates returnval must carry a version")
        return UpdateSet(
            version=str(data["version"]),
            filter_set=tuple(self._filter_update_from_dict(f) for f in data.get("filterSet") or ()),
        )

    def decode_reference(self, data: Any) -> ObjectReference:
        if not self._is_reference(data):
            raise ProtocolError(f"Expected a managed object reference, got {data!r}")
        return ObjectReference(kind=data["type"], id=data["value"])

    def decode_value(self, data: Any) -> Any:
        """Decode an attribute value, turning embedded references into ``ObjectReference``."""
        if self._is_reference(data):
            return self.decode_reference(data)
        if isinstance(data, list):
            return [self.decode_value(v) for v in data]
        if isinstance(data, Mapping):
            return {k: self.decode_value(v) for k, v in data.items()}
        return data

    def _is_reference(self, data: Any) -> bool:
        return isinstance(data, Mapping) and data.get("kind") == REFERENCE_KIND

    def _record_from_dict(self, data: Any) -> AttributeRecord:
        if not isinstance(data, Mapping) or "obj" not in data:
            raise ProtocolError(f"Malformed object content: {data!r}")
        attributes = {p["name"]: self.decode_value(p.get("val")) for p in data.get("propSet") or ()}
        missing = {m["path"]: m.get("fault") for m in data.get("missingSet") or ()}
        return AttributeRecord(
            obj=self.decode_reference(data["obj"]),
            attributes=attributes,
            missing=missing,
        )

    def _filter_update_from_dict(self, data: Mapping[str, Any]) -> FilterUpdate:
        return FilterUpdate(
            filter=self.decode_reference(data["filter"]),
            object_set=tuple(self._object_update_from_dict(o) for o in data.get("objectSet") or ()),
        )

    def _object_update_from_dict(self, data: Mapping[str, Any]) -> ObjectUpdate:
        try:
            kind = UpdateKind(data.get("kind", "modify"))
        except ValueError:
            raise ProtocolError(f"Unknown object update kind: {data.get('kind')!r}") from None
        return ObjectUpdate(
            obj=self.decode_reference(data["obj"]),
            kind=kind,
            changes=tuple(self._change_from_dict(c) for c in data.get("changeSet") or ()),
        )

    def _change_from_dict(self, data: Mapping[str, Any]) -> PropertyChange:
        try:
            op = ChangeOp(data["op"])
        except (KeyError, ValueError):
            raise ProtocolError(f"Unknown property change operation: {data.get('op')!r}") from None
        return PropertyChange(name=data["name"], op=op, value=self.decode_value(data.get("val")))

    # ------------------------------------------------------------------
    # Dumps
    # ------------------------------------------------------------------

    def to_json(self, payload: Mapping[str, Any], indent: int = 2) -> str:
        """Serialize a payload to a JSON string."""
        return json.dumps(payload, indent=indent)

    def from_json(self, text: str) -> dict[str, Any]:
        """Parse a JSON payload dump."""
        return json.loads(text)

    def to_yaml(self, payload: Mapping[str, Any]) -> str:
        """Serialize a payload to a YAML string."""
        return yaml.dump(dict(payload), default_flow_style=False, allow_unicode=True, sort_keys=False)

    def from_yaml(self, text: str) -> dict[str, Any]:
        """Parse a YAML payload dump."""
        return yaml.safe_load(text)
