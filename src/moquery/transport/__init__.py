"""Call primitive, cancellation and the scripted test invoker."""
from __future__ import annotations

from moquery.transport.cancel import CancellationToken
from moquery.transport.invoker import Invoker
from moquery.transport.scripted import ScriptedInvoker

__all__ = ["Invoker", "CancellationToken", "ScriptedInvoker"]
