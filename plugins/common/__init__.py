"""
Common utilities shared across database plugins.

This module provides reusable components for:
- Percentage and human-readable formatting helpers
- Retry logic for connection attempts
"""

from .check_helpers import (
    floor_percentage,
    hr_bytes,
    hr_bytes_rnd,
    hr_num,
    pretty_uptime,
    round_half_up,
)
from .retry_utils import retry_on_failure

__all__ = [
    'floor_percentage',
    'hr_bytes',
    'hr_bytes_rnd',
    'hr_num',
    'pretty_uptime',
    'round_half_up',
    'retry_on_failure',
]
