"""Utility modules."""

from fightodds.utils.logging import setup_logging, setup_logging_from_settings

__all__ = ["setup_logging", "setup_logging_from_settings"]
