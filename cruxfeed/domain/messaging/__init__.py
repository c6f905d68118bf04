"""Direct-message conversations."""
