"""Utility modules for the session tree store."""
