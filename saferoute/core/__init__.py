"""
Core domain models and pure functions for SafeRoute.

This module contains the domain models and pure business logic
that are independent of external I/O and infrastructure concerns.
"""

from .models import (
    AlertRecord,
    AnnotatedHazard,
    Coordinate,
    Hazard,
    LocationUpdateResult,
    RoutePath,
    Vote,
)
from .alert_zone import build_voice_message, classify_zone

__all__ = [
    "AlertRecord",
    "AnnotatedHazard",
    "Coordinate",
    "Hazard",
    "LocationUpdateResult",
    "RoutePath",
    "Vote",
    "build_voice_message",
    "classify_zone",
]
