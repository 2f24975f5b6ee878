"""Unit tests for moquery.collector.waiter: ChangeWaiter isolation,
termination, cursor propagation, cleanup on failure and cancellation.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

import pytest

from moquery.collector import ChangeWaiter, wait_for_properties
from moquery.errors import OperationCancelledError, ServerFault, TransportError
from moquery.transport import CancellationToken, ScriptedInvoker
from moquery.types import ChangeOp, ObjectReference, PropertyChange
from moquery.wire import REFERENCE_KIND

_HANDLE = {"kind": REFERENCE_KIND, "type": "PropertyCollector", "value": "session[1]pc"}
_FILTER = {"kind": REFERENCE_KIND, "type": "PropertyFilter", "value": "session[1]f"}


def _ref(obj: ObjectReference) -> dict[str, str]:
    return {"kind": REFERENCE_KIND, "type": obj.kind, "value": obj.id}


def _updates(version: str, *objects: tuple[ObjectReference, str]) -> dict[str, object]:
    """Build a WaitForUpdates response with one powerState change per object."""
    return {
        "returnval": {
            "version": version,
            "filterSet": [
                {
                    "filter": _FILTER,
                    "objectSet": [
                        {
                            "kind": "modify",
                            "obj": _ref(obj),
                            "changeSet": [{"name": "runtime.powerState", "op": "assign", "val": state}],
                        }
                        for obj, state in objects
                    ],
                }
            ],
        }
    }


def _prepare(invoker: ScriptedInvoker) -> ScriptedInvoker:
    invoker.add_response("CreatePropertyCollector", {"returnval": _HANDLE})
    invoker.add_response("CreateFilter", {"returnval": _FILTER})
    invoker.add_response("DestroyPropertyCollector", {"returnval": None})
    return invoker


def _powered_on(changes: Sequence[PropertyChange]) -> bool:
    return any(c.value == "poweredOn" for c in changes)


class TestTermination:
    def test_true_on_first_round(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker).add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))
        ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], lambda changes: True)
        assert len(invoker.calls_for("WaitForUpdates")) == 1
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1
        assert invoker.calls[-1]["method"] == "DestroyPropertyCollector"

    def test_polls_until_predicate_holds(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker).add_responses(
            "WaitForUpdates",
            [
                _updates("1", (vm, "poweredOff")),
                _updates("2", (vm, "suspended")),
                _updates("3", (vm, "poweredOn")),
            ],
        )
        ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert len(invoker.calls_for("WaitForUpdates")) == 3
        assert invoker.pending("WaitForUpdates") == 0

    def test_filter_scoped_to_target(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker).add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))
        ChangeWaiter(invoker).wait(vm, ["runtime.powerState", "name"], _powered_on)
        spec = invoker.calls_for("CreateFilter")[0]["spec"]
        assert spec["objectSet"] == [{"obj": _ref(vm), "skip": False, "selectSet": []}]
        assert spec["propSet"] == [
            {"type": "VirtualMachine", "all": False, "pathSet": ["runtime.powerState", "name"]}
        ]


class TestIsolation:
    def test_only_target_changes_reach_predicate(
        self, invoker: ScriptedInvoker, vm: ObjectReference, other_vm: ObjectReference
    ) -> None:
        _prepare(invoker).add_responses(
            "WaitForUpdates",
            [
                _updates("1", (other_vm, "poweredOn"), (vm, "poweredOff")),
                _updates("2", (other_vm, "poweredOn")),
                _updates("3", (vm, "poweredOn")),
            ],
        )
        seen: list[Sequence[PropertyChange]] = []

        def predicate(changes: Sequence[PropertyChange]) -> bool:
            seen.append(changes)
            return _powered_on(changes)

        ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], predicate)
        assert seen == [
            (PropertyChange("runtime.powerState", ChangeOp.ASSIGN, "poweredOff"),),
            (PropertyChange("runtime.powerState", ChangeOp.ASSIGN, "poweredOn"),),
        ]


class TestCursor:
    def test_cursor_echoed_every_round(
        self, invoker: ScriptedInvoker, vm: ObjectReference, other_vm: ObjectReference
    ) -> None:
        _prepare(invoker).add_responses(
            "WaitForUpdates",
            [
                _updates("v1"),
                _updates("v2", (other_vm, "poweredOn")),
                _updates("v3", (vm, "poweredOff")),
                _updates("v4", (vm, "poweredOn")),
            ],
        )
        ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        versions = [c["version"] for c in invoker.calls_for("WaitForUpdates")]
        assert versions == ["", "v1", "v2", "v3"]


class TestFailures:
    def test_wait_failure_destroys_and_propagates(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        error = TransportError("reset")
        _prepare(invoker).add_responses("WaitForUpdates", [_updates("1"), error])
        with pytest.raises(TransportError) as excinfo:
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert excinfo.value is error
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1

    def test_filter_fault_destroys(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        invoker.add_response("CreatePropertyCollector", {"returnval": _HANDLE})
        invoker.add_response("CreateFilter", {"fault": {"faultCode": "InvalidProperty", "faultString": "bad path"}})
        invoker.add_response("DestroyPropertyCollector", {"returnval": None})
        with pytest.raises(ServerFault):
            ChangeWaiter(invoker).wait(vm, ["nonsense"], _powered_on)
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1
        assert invoker.calls_for("WaitForUpdates") == []

    def test_create_failure_needs_no_destroy(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        invoker.add_response("CreatePropertyCollector", TransportError("down"))
        with pytest.raises(TransportError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert invoker.calls_for("DestroyPropertyCollector") == []

    def test_predicate_error_destroys(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker).add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))

        def predicate(changes: Sequence[PropertyChange]) -> bool:
            raise LookupError("bad predicate")

        with pytest.raises(LookupError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], predicate)
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1


class TestReleaseFailures:
    def _failing_release(self, invoker: ScriptedInvoker, error: Exception) -> ScriptedInvoker:
        invoker.add_response("CreatePropertyCollector", {"returnval": _HANDLE})
        invoker.add_response("CreateFilter", {"returnval": _FILTER})
        invoker.add_response("DestroyPropertyCollector", error)
        return invoker

    def test_wait_fault_wins_over_release_error(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        self._failing_release(invoker, TransportError("connection reset"))
        invoker.add_response("WaitForUpdates", {"fault": {"faultCode": "RequestCanceled", "faultString": "gone"}})
        with pytest.raises(ServerFault) as excinfo:
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert excinfo.value.code == "RequestCanceled"
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1

    def test_transport_error_kept_identical(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        error = TransportError("poll reset")
        self._failing_release(invoker, TransportError("release reset"))
        invoker.add_response("WaitForUpdates", error)
        with pytest.raises(TransportError) as excinfo:
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert excinfo.value is error

    def test_filter_fault_wins_over_release_error(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        invoker.add_response("CreatePropertyCollector", {"returnval": _HANDLE})
        invoker.add_response("CreateFilter", {"fault": {"faultCode": "InvalidProperty", "faultString": "bad path"}})
        invoker.add_response("DestroyPropertyCollector", TransportError("connection reset"))
        with pytest.raises(ServerFault, match="InvalidProperty"):
            ChangeWaiter(invoker).wait(vm, ["nonsense"], _powered_on)

    def test_predicate_error_wins_over_release_error(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        self._failing_release(invoker, TransportError("connection reset"))
        invoker.add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))

        def predicate(changes: Sequence[PropertyChange]) -> bool:
            raise LookupError("bad predicate")

        with pytest.raises(LookupError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], predicate)

    def test_release_error_after_failure_logged_at_debug(
        self, invoker: ScriptedInvoker, vm: ObjectReference, caplog: pytest.LogCaptureFixture
    ) -> None:
        self._failing_release(invoker, TransportError("connection reset"))
        invoker.add_response("WaitForUpdates", TransportError("poll reset"))
        with caplog.at_level(logging.DEBUG, logger="moquery.collector.waiter"):
            with pytest.raises(TransportError, match="poll reset"):
                ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert any(
            r.levelno == logging.DEBUG and "also failed" in r.getMessage() for r in caplog.records
        )

    def test_satisfied_wait_ignores_release_error(
        self, invoker: ScriptedInvoker, vm: ObjectReference, caplog: pytest.LogCaptureFixture
    ) -> None:
        self._failing_release(invoker, TransportError("connection reset"))
        invoker.add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))
        with caplog.at_level(logging.WARNING, logger="moquery.collector.waiter"):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on)
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1
        assert "was met but releasing" in caplog.text


class TestCancellation:
    def test_cancelled_up_front_issues_no_calls(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on, cancel=token)
        assert invoker.call_count == 0

    def test_cancelled_during_filter_creation(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        token = CancellationToken()

        def create_filter(request: dict[str, object]) -> dict[str, object]:
            token.cancel()
            return {"returnval": _FILTER}

        invoker.add_response("CreatePropertyCollector", {"returnval": _HANDLE})
        invoker.add_response("CreateFilter", create_filter)
        invoker.add_response("DestroyPropertyCollector", {"returnval": None})
        with pytest.raises(OperationCancelledError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on, cancel=token)
        assert invoker.calls_for("WaitForUpdates") == []
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1

    def test_cancelled_between_rounds(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        token = CancellationToken()

        def first_round(request: dict[str, object]) -> dict[str, object]:
            token.cancel()
            return _updates("1", (vm, "poweredOff"))

        _prepare(invoker).add_responses("WaitForUpdates", [first_round, _updates("2", (vm, "poweredOn"))])
        with pytest.raises(OperationCancelledError):
            ChangeWaiter(invoker).wait(vm, ["runtime.powerState"], _powered_on, cancel=token)
        assert len(invoker.calls_for("WaitForUpdates")) == 1
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1

    def test_token_handed_to_invoker(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        received: dict[str, object] = {}

        class Spy:
            def invoke(self, request: dict, cancel: CancellationToken | None = None) -> dict:
                received[request["method"]] = cancel
                return invoker.invoke(request, cancel)

        _prepare(invoker).add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))
        token = CancellationToken()
        ChangeWaiter(Spy()).wait(vm, ["runtime.powerState"], _powered_on, cancel=token)
        assert received["CreatePropertyCollector"] is token
        assert received["CreateFilter"] is token
        assert received["WaitForUpdates"] is token
        assert received["DestroyPropertyCollector"] is None


class TestConvenience:
    def test_wait_for_properties(self, invoker: ScriptedInvoker, vm: ObjectReference) -> None:
        _prepare(invoker).add_response("WaitForUpdates", _updates("1", (vm, "poweredOn")))
        wait_for_properties(invoker, vm, ["runtime.powerState"], _powered_on)
        assert len(invoker.calls_for("DestroyPropertyCollector")) == 1
