"""Threshold evaluation shared by every analyzer."""
from typing import Optional

from .schema import Status


def evaluate_status(value: float, target_min: Optional[float] = None, target_max: Optional[float] = None) -> Status:
    """Map a value and optional [min, max] bounds to a status.

    Below min is ALERT, above max is WARN, anything else OK. The min check
    runs first, so inverted bounds resolve to ALERT.
    """
    if target_min is not None and value < target_min:
        return Status.ALERT
    if target_max is not None and value > target_max:
        return Status.WARN
    return Status.OK


def bounds_are_sane(target_min: Optional[float], target_max: Optional[float]) -> bool:
    """False only when both bounds are set and min exceeds max."""
    if target_min is None or target_max is None:
        return True
    return target_min <= target_max
