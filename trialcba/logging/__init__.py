"""Labeled logging setup and error log buffer."""
