"""Sternhalma (hex Chinese Checkers) rules engine, search AI and trainer."""

__version__ = "0.1.0"
