from .client import HttpReputationNotifier

__all__ = ["HttpReputationNotifier"]
