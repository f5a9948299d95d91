"""Core logging, metrics and health components with no framework dependencies."""
