"""Loan check-out orchestration."""

from .check_out import CheckOutService

__all__ = ["CheckOutService"]
