"""Checkinbot — scheduled daily check-ins for a set of accounts, with a live terminal dashboard."""

__version__ = "0.1.0"
