"""Identifier helpers."""

import uuid


def new_id() -> str:
    """Random document id (UUID4 string)."""
    return str(uuid.uuid4())
