"""Small helpers shared by node definitions."""
