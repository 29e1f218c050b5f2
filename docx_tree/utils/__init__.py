"""Utility helpers for docx-tree."""

from .logger import configure_logging, get_logger
from .id_manager import IDManager

__all__ = ["configure_logging", "get_logger", "IDManager"]
