"""Ports (abstract boundaries)."""
