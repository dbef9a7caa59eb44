from __future__ import annotations


class DashboardError(Exception):
    """Base class for dashboard pipeline errors."""


class LoadError(DashboardError):
    """Dataset could not be fetched, was empty, or had malformed rows."""


class ValidationError(DashboardError):
    """A user-entered control value is outside its accepted range."""


class UnknownPageError(DashboardError):
    pass
