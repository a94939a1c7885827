"""Authentication and role-level authorization."""
