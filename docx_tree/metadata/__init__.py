"""Document property parts (core, extended and custom properties)."""

from .core_properties import CoreProperties
from .custom_properties import CustomProperty

__all__ = ["CoreProperties", "CustomProperty"]
