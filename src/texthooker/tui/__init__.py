"""Textual dashboard for texthooker."""

from texthooker.tui.app import TexthookerApp, run_tui

__all__ = ["TexthookerApp", "run_tui"]
