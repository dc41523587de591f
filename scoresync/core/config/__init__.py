"""Configuration module for scoresync."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
