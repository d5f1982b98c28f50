"""Storage collaborators."""
