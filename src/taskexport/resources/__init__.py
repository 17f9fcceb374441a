"""Package data (schemas)."""
