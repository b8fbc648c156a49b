# hospital_cabins/dependencies.py
from fastapi import HTTPException, status

from hospital_cabins.auth import get_current_user, verify_admin_user
from hospital_cabins.clock import Clock, SystemClock
from hospital_cabins.config import settings
from hospital_cabins.errors import GENERIC_FAILURE_MESSAGE

__all__ = ["get_clock", "get_current_user", "verify_admin_user", "raise_for_outcome", "raise_for_error"]

_system_clock = SystemClock(settings.TIMEZONE)

ERROR_STATUS_CODES = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "unavailable": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "infrastructure": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_clock() -> Clock:
    return _system_clock


def raise_for_error(kind: str, message: str):
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=message or GENERIC_FAILURE_MESSAGE,
    )


# ✅ Turn a failed service outcome into the matching HTTP error
def raise_for_outcome(outcome):
    if not outcome.success:
        raise_for_error(outcome.error_kind, outcome.error)
    return outcome.booking
