"""Asynchronous resource-state reconciliation for cloud control planes."""

__version__ = "0.1.0"
