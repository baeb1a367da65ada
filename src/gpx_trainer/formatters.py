"""Formatting utilities for display."""

from datetime import timedelta


def format_duration(td: timedelta) -> str:
    """Format a duration as HH:MM:SS."""
    total_seconds = max(0, int(td.total_seconds()))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_distance(meters: float) -> str:
    """Format meters as km with two decimals."""
    return f"{meters / 1000:.2f} km"


def format_gradient(percent: float) -> str:
    sign = "+" if percent > 0 else ""
    return f"{sign}{percent:.1f}%"
