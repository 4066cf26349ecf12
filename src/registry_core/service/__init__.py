"""Registry core services."""
