"""carepay - payroll record keeping for care-service offices."""

__version__ = "0.3.0"
