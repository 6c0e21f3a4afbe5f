"""Terminal presentation of the status projection."""

from checkinbot.dashboard.dashboard import Dashboard, format_remaining, render_snapshot

__all__ = ["Dashboard", "format_remaining", "render_snapshot"]
