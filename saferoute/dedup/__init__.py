"""
Alert deduplication for SafeRoute.
"""

from .cooldown import AlertCooldownCache

__all__ = ["AlertCooldownCache"]
