"""Compliance module — license/certification records and expiration tracking."""
