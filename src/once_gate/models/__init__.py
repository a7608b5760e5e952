# src/once_gate/models/__init__.py
"""SQLAlchemy models for the once gate."""

from .preference import Preference

__all__ = ["Preference"]
