"""
Call-seconds thresholds shared by the API and the voice client.

Only MIN_CALL_START_SECONDS is enforced (when a call starts); the levels
are advisory and drive the warnings shown next to the call controls.
"""
import os
from typing import Optional

MIN_CALL_START_SECONDS = int(os.getenv("MIN_CALL_START_SECONDS", "10"))

ALMOST_EXHAUSTED_BELOW = 30
CRITICAL_BELOW = 15

NOMINAL = "nominal"
ALMOST_EXHAUSTED = "almost_exhausted"
CRITICAL = "critical"
EXHAUSTED = "exhausted"
UNMETERED = "unmetered"


def quota_level(remaining: Optional[int]) -> str:
    """Map a remaining balance (None = no quota configured) to a warning level."""
    if remaining is None:
        return UNMETERED
    if remaining <= 0:
        return EXHAUSTED
    if remaining < CRITICAL_BELOW:
        return CRITICAL
    if remaining < ALMOST_EXHAUSTED_BELOW:
        return ALMOST_EXHAUSTED
    return NOMINAL
