"""Document store adapters and the backend factory."""
