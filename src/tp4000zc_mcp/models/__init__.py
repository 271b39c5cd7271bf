"""Data models for decoded meter readings."""

from .reading import Reading
