"""
JSON serialization utilities for the structured findings export.

Derived metrics carry Decimal values, the snapshot exposes read-only
mappings, and findings carry Enum severities; none of these are handled by
the stock encoder.
"""

import json
from decimal import Decimal
from datetime import datetime, timedelta
from enum import Enum


class UniversalJSONEncoder(json.JSONEncoder):
    """
    A JSON encoder for the report's value types.

    Usage:
        json.dumps(data, cls=UniversalJSONEncoder)
    """

    def default(self, obj):
        """
        Convert non-JSON-serializable objects to JSON-compatible formats.

        Args:
            obj: The object to serialize

        Returns:
            JSON-serializable representation of the object
        """
        # Decimal('100') -> 100, Decimal('94.5') -> 94.5
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() and obj.as_tuple().exponent >= 0 else float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, timedelta):
            return obj.total_seconds()

        if isinstance(obj, (bytes, bytearray)):
            return obj.decode('utf-8', errors='replace')

        # Read-only mappings (MappingProxyType) and other dict-likes.
        if hasattr(obj, 'items') and callable(getattr(obj, 'items')):
            return dict(obj.items())

        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)

        if hasattr(obj, 'to_dict') and callable(getattr(obj, 'to_dict')):
            return obj.to_dict()

        return super().default(obj)


def safe_json_dumps(obj, **kwargs):
    """
    Serialize an object to a JSON string with UniversalJSONEncoder.

    Args:
        obj: Any Python object to serialize
        **kwargs: Additional arguments passed to json.dumps()
                  (e.g., indent=2, sort_keys=True)

    Example:
        json_str = safe_json_dumps(findings, indent=2)
    """
    kwargs.setdefault('cls', UniversalJSONEncoder)
    return json.dumps(obj, **kwargs)
