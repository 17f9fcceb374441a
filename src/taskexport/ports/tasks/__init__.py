"""Ports for task sources."""
