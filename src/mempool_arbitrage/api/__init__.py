"""HTTP status and administration surface."""
