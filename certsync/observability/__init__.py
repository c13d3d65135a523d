"""Logging and metrics for certsync."""
