"""
Common helper functions for health checks.

Numeric and display helpers shared by the derivation engine, the classifier
and the report builder. Percentages come in two flavours: truncated integer
percentages (exact floor on non-negative operands) and one-decimal
percentages rounded half away from zero.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union


Number = Union[int, float, Decimal]

KIB = 1024
MIB = 1024 ** 2
GIB = 1024 ** 3


def round_half_up(value: Number, places: int = 1) -> Decimal:
    """
    Round a value half away from zero to a fixed number of decimal places.

    Example:
        round_half_up(94.45)      # Decimal('94.5')
        round_half_up(0.1234, 3)  # Decimal('0.123')
    """
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def floor_percentage(value: int, total: int) -> Optional[int]:
    """
    Integer percentage of value over total, truncated toward zero.

    Returns None if total is 0, so callers can tell "not computed" apart
    from a real 0%.

    Example:
        floor_percentage(29, 100)  # 29
        floor_percentage(1, 3)     # 33
        floor_percentage(5, 0)     # None
    """
    if not total:
        return None
    return (value * 100) // total


def hr_bytes(num: Number) -> str:
    """
    Format bytes with one decimal place (K, M, G).

    Example:
        hr_bytes(16 * 1024 ** 2)  # "16.0M"
        hr_bytes(512)             # "512B"
    """
    if num >= GIB:
        return f"{num / GIB:.1f}G"
    elif num >= MIB:
        return f"{num / MIB:.1f}M"
    elif num >= KIB:
        return f"{num / KIB:.1f}K"
    return f"{num}B"


def hr_bytes_rnd(num: Number) -> str:
    """
    Format bytes truncated to a whole unit (K, M, G).

    Example:
        hr_bytes_rnd(64 * 1024 ** 2)  # "64M"
    """
    if num >= GIB:
        return f"{int(num // GIB)}G"
    elif num >= MIB:
        return f"{int(num // MIB)}M"
    elif num >= KIB:
        return f"{int(num // KIB)}K"
    return f"{num}B"


def hr_num(num: Number) -> str:
    """Format a count to the nearest lower power of 1000 (K, M, B)."""
    if num >= 1000 ** 3:
        return f"{int(num // 1000 ** 3)}B"
    elif num >= 1000 ** 2:
        return f"{int(num // 1000 ** 2)}M"
    elif num >= 1000:
        return f"{int(num // 1000)}K"
    return str(num)


def pretty_uptime(uptime: int) -> str:
    """
    Render seconds as a compact duration, dropping leading zero units.

    Example:
        pretty_uptime(93784)  # "1d 2h 3m 4s"
        pretty_uptime(59)     # "59s"
    """
    seconds = uptime % 60
    minutes = (uptime % 3600) // 60
    hours = (uptime % 86400) // 3600
    days = uptime // 86400

    if days > 0:
        return f"{days}d {hours}h {minutes}m {seconds}s"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    elif minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
