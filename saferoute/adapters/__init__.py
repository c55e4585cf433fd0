"""
Adapters for SafeRoute hexagonal architecture.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import SQLiteHazardStore, SQLiteVoteLedger
from .reputation import HttpReputationNotifier

__all__ = ["SQLiteHazardStore", "SQLiteVoteLedger", "HttpReputationNotifier"]
