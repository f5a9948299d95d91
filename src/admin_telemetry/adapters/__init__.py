"""Adapters connecting the core components to frameworks and stdlib logging."""
