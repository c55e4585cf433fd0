"""
Metrics definitions for SafeRoute.

This module defines Prometheus metrics for monitoring
hazard detection and community validation.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
location_updates = Counter(
    "location_updates_total",
    "Number of location updates processed"
)

hazard_candidates = Counter(
    "hazard_candidates_total",
    "Number of candidate hazards returned by the geospatial store"
)

hazards_relevant = Counter(
    "hazards_relevant_total",
    "Number of hazards that passed heading and route filtering"
)

alerts_emitted = Counter(
    "alerts_emitted_total",
    "Number of alerts emitted to users",
    ["level"]
)

alerts_suppressed = Counter(
    "alerts_suppressed_total",
    "Number of alerts suppressed by the cooldown ledger"
)

store_timeouts = Counter(
    "hazard_store_timeouts_total",
    "Geospatial store queries that timed out"
)

votes_total = Counter(
    "votes_total",
    "Validation votes by action and outcome",
    ["action", "outcome"]
)

status_transitions = Counter(
    "hazard_status_transitions_total",
    "Hazard lifecycle transitions",
    ["from_status", "to_status"]
)

# 히스토그램 메트릭
detection_seconds = Histogram(
    "detection_duration_seconds",
    "Time spent processing a location update",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

vote_seconds = Histogram(
    "vote_duration_seconds",
    "Time spent applying a validation vote",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# 게이지 메트릭
cooldown_entries = Gauge(
    "cooldown_entries",
    "Current number of entries in the alert cooldown ledger"
)

uptime_seconds = Gauge(
    "uptime_seconds",
    "Service uptime in seconds"
)
