"""Notification preferences (namespaced)."""
