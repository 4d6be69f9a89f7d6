"""
Logging, metrics and health reporting.
"""
