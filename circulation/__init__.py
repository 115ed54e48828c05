"""Loan due date and request queue engine for library circulation."""

__version__ = "0.1.0"
