"""Deterministic business-element classification."""
