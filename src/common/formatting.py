"""Human-readable formatting helpers for status text."""
from __future__ import annotations

KB = 1024
MB = KB * 1024
GB = MB * 1024


def format_bytes(num_bytes: int) -> str:
    """Render a byte count in the largest 1024-based unit that is at least 1.

    >>> format_bytes(512)
    '512 bytes'
    >>> format_bytes(2_097_152)
    '2.00 MB'
    """
    if num_bytes < 0:
        raise ValueError(f"byte count cannot be negative: {num_bytes}")
    if num_bytes >= GB:
        return f"{num_bytes / GB:.2f} GB"
    if num_bytes >= MB:
        return f"{num_bytes / MB:.2f} MB"
    if num_bytes >= KB:
        return f"{num_bytes / KB:.2f} KB"
    return f"{num_bytes} bytes"
