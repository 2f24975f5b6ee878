"""Change-notification collectors and the change waiter."""
from __future__ import annotations

from moquery.collector.collector import CollectorState, PropertyCollector
from moquery.collector.waiter import ChangeWaiter, Predicate, wait_for_properties

__all__ = [
    "CollectorState",
    "PropertyCollector",
    "ChangeWaiter",
    "Predicate",
    "wait_for_properties",
]
