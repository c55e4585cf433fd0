"""
Common utilities for SafeRoute.
"""
