"""Shared test fixtures for moquery.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. Add project-wide fixtures here; keep
domain-specific fixtures close to the tests that use them.
"""
from __future__ import annotations

import pytest

from moquery.transport.scripted import ScriptedInvoker
from moquery.types import ObjectReference


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "moquery"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"


@pytest.fixture()
def invoker() -> ScriptedInvoker:
    """Return an empty scripted invoker; tests queue their own responses."""
    return ScriptedInvoker()


@pytest.fixture()
def vm() -> ObjectReference:
    return ObjectReference(kind="VirtualMachine", id="vm-42")


@pytest.fixture()
def other_vm() -> ObjectReference:
    return ObjectReference(kind="VirtualMachine", id="vm-7")
