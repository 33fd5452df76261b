"""Attendance module — daily attendance log, repository and summaries."""
