from __future__ import annotations


def attendance_percentage(present: int, total: int) -> int:
    """Whole-number percentage, rounded half up. 0 when there is nobody to count."""
    if total <= 0:
        return 0
    # (present / total * 100) + 0.5, floored, kept in integers.
    return (200 * present + total) // (2 * total)
