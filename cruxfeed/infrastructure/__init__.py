"""Infrastructure adapters: document stores, blob storage, caches, config."""
