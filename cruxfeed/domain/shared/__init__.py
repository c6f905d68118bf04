"""Shared kernel: errors, time helpers and ports."""
