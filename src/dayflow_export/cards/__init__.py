"""Activity card models and time-coverage reconciliation."""
