"""Address space."""
