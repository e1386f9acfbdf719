"""Ekhaya car wash admin backend."""

__version__ = "1.0.0"
