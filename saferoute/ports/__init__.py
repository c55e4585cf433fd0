"""
Port interfaces for SafeRoute hexagonal architecture.

This module defines the port interfaces (Protocols) that define
the contracts between the core domain and external adapters.
"""

from .hazard_store import HazardStorePort
from .vote_ledger import VoteLedgerPort
from .reputation import ReputationPort
from .dispatch import AlertDispatchPort

__all__ = ["HazardStorePort", "VoteLedgerPort", "ReputationPort", "AlertDispatchPort"]
