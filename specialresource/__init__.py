"""Resource types, status, finalizer and preflight reconciliation logic for special resources on a cluster."""

__version__ = "0.0.1"