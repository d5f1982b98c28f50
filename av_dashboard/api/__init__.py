"""HTTP layer for the dashboard proxy."""
