"""Aggregation, metrics, scenarios, export and run orchestration."""
