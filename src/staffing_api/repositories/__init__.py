"""Repository layer package."""
