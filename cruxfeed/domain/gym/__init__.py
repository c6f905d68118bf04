"""Gyms, gym administrators and per-day visit rosters."""
