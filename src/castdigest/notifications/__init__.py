"""Notification dispatch."""
