"""Pushed-state tracking."""
