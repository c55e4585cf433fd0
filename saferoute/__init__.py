"""
SafeRoute hazard relevance and alerting engine.

Proximity alerts for drivers and community validation of reported
road hazards.
"""
__version__ = "0.3.0"
