"""Wasteflow: waste-processing lifecycle tracking with role-gated administration."""

__version__ = "0.1.0"
