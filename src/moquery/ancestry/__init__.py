"""Ancestry resolution."""
from __future__ import annotations

from moquery.ancestry.resolver import (
    ENTITY_KIND,
    AncestryResolver,
    ancestry_batch,
    order_chain,
)

__all__ = ["AncestryResolver", "ancestry_batch", "order_chain", "ENTITY_KIND"]
