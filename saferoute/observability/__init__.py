"""
Observability for SafeRoute: logging, metrics and health endpoints.
"""
