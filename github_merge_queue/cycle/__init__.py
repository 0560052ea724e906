"""Merge queue state machine: selector, gates, reporter and orchestrator."""
