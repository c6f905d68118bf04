"""User aggregate and follow graph edges."""
