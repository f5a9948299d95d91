"""HTTP adapters serving the health and metrics endpoints."""
