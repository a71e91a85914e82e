"""Utility functions for configuration and logging."""

from photo_declutter.utils.config import Config
from photo_declutter.utils.logger import setup_logger

__all__ = ["Config", "setup_logger"]
