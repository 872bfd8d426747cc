"""LMRA (Last-Minute Risk Analysis) completion gate and session service."""

from .gate import (
    CHECK_CATEGORIES,
    can_complete,
    check_details,
    missing_checks,
    has_stop_work,
    personnel_checks_complete,
    equipment_checks_complete,
    start_session,
    update_session,
    complete,
)
from .service import LMRAService

__all__ = [
    "CHECK_CATEGORIES",
    "can_complete",
    "check_details",
    "missing_checks",
    "has_stop_work",
    "personnel_checks_complete",
    "equipment_checks_complete",
    "start_session",
    "update_session",
    "complete",
    "LMRAService",
]
