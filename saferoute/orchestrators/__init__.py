"""
Orchestrators for SafeRoute.

Glue between the pure core, the cooldown ledger and the ports.
"""

from .detection import DetectionOrchestrator
from .validation import ValidationService

__all__ = ["DetectionOrchestrator", "ValidationService"]
