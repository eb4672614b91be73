"""
Display formatting for dashboard values.
"""
from typing import Any

WEI_PER_ETH = 1e18


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def wei_to_eth(wei_value: Any) -> float:
    return wei_value / WEI_PER_ETH if _is_number(wei_value) else 0.0


def format_eth(wei_value: Any) -> str:
    """Format a wei amount as ETH with 6 decimal places"""
    if not _is_number(wei_value):
        return "0.000000"
    return f"{wei_value / WEI_PER_ETH:.6f}"


def format_time(nanoseconds: Any) -> str:
    """Format a duration in nanoseconds using μs, ms or s"""
    if not _is_number(nanoseconds):
        nanoseconds = 0
    if nanoseconds < 1_000_000:
        return f"{nanoseconds / 1_000:.2f} μs"
    elif nanoseconds < 1_000_000_000:
        return f"{nanoseconds / 1_000_000:.2f} ms"
    return f"{nanoseconds / 1_000_000_000:.2f} s"


def shorten_address(address: Any) -> str:
    """0x1234567890abcdef... -> 0x1234...cdef"""
    if not address or not isinstance(address, str):
        return ""
    return f"{address[:6]}...{address[-4:]}"


def format_count(value: Any) -> str:
    """Integer with thousands separators"""
    return f"{int(value) if _is_number(value) else 0:,}"


def format_fixed(value: Any, places: int = 2) -> str:
    return f"{value if _is_number(value) else 0:.{places}f}"


def format_bucket(bucket_start: float, scale: float = 1) -> str:
    """Bucket label, e.g. 150000000 with scale 1e6 -> '150'"""
    value = bucket_start / scale
    return str(int(value)) if float(value).is_integer() else str(value)


def short_model_name(model_id: Any, default: str) -> str:
    """'org/model-name' -> 'model-name'"""
    if not model_id or not isinstance(model_id, str):
        return default
    parts = model_id.split("/", 1)
    return parts[1] if len(parts) > 1 and parts[1] else model_id
