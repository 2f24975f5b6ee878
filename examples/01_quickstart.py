#!/usr/bin/env python3
"""Example: Quickstart: moquery

Replay a recorded session: fetch a VM's properties, resolve its
ancestry, and wait until it is powered on.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install moquery
"""
from __future__ import annotations

import logging
from pathlib import Path

import moquery

SESSION = Path(__file__).parent / "sessions" / "inventory.yaml"


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    print(f"moquery version: {moquery.__version__}")

    invoker = moquery.ScriptedInvoker.from_file(SESSION)
    client = moquery.Client(invoker)
    vm = moquery.ObjectReference("VirtualMachine", "vm-42")

    # Step 1: Fetch selected properties
    for record in client.properties(vm, ["name", "runtime.powerState"]):
        print(f"{record.obj}: {dict(record.attributes)}")

    # Step 2: Resolve the inventory path, root first
    chain = client.ancestors(vm)
    print("Inventory path: /" + "/".join(e.name for e in chain[1:]))

    # Step 3: Block until the VM reports poweredOn
    client.wait_for_properties(
        vm,
        ["runtime.powerState"],
        lambda changes: any(c.value == "poweredOn" for c in changes),
    )
    print(f"{vm} is powered on after {len(invoker.calls_for('WaitForUpdates'))} poll(s)")


if __name__ == "__main__":
    main()
