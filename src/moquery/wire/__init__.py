"""Wire payload codec."""
from __future__ import annotations

from moquery.wire.codec import (
    CREATE_FILTER,
    CREATE_PROPERTY_COLLECTOR,
    DESTROY_PROPERTY_COLLECTOR,
    REFERENCE_KIND,
    RETRIEVE_PROPERTIES,
    WAIT_FOR_UPDATES,
    WireCodec,
)

__all__ = [
    "WireCodec",
    "REFERENCE_KIND",
    "RETRIEVE_PROPERTIES",
    "CREATE_PROPERTY_COLLECTOR",
    "CREATE_FILTER",
    "WAIT_FOR_UPDATES",
    "DESTROY_PROPERTY_COLLECTOR",
]
