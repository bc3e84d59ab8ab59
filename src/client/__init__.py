"""Data-access client used by dashboard code."""

from .dashboard_client import DashboardClient

__all__ = ["DashboardClient"]
