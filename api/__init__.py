"""HTTP layer - routes, middleware and dependency wiring."""
