"""API routers package."""

from staffing_api.routers import contracts, employees, transfers

__all__ = [
    "contracts",
    "employees",
    "transfers",
]
