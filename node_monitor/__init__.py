"""Tailnet Node Monitor"""

__version__ = "1.0.0"
