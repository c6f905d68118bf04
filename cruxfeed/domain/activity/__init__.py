"""Activity items (posts, beta, events, group visits) and their comments."""
