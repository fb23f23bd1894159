"""Scriptorium - Discord persona proxy bot."""

__version__ = "0.1.0"
