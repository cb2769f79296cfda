"""Convenience exports for ORM models."""
from .base import TimestampMixin
from .report import Report

__all__ = ["Report", "TimestampMixin"]
