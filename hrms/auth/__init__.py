"""Auth module — User model, current-actor dependency and access-control policy."""
