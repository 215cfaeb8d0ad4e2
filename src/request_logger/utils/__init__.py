"""Shared helpers for request logging."""
