"""HRMS — employee records, attendance, leave workflow and compliance tracking."""

__version__ = "1.0.0"
