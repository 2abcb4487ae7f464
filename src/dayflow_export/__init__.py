"""Activity card reconciliation and durable webhook delivery."""

__version__ = "0.1.0"
