"""Query batch construction."""
from __future__ import annotations

from moquery.builder.builder import build_batch

__all__ = ["build_batch"]
