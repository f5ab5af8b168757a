"""
Command-line interface modules for the Token Signal Agent.
"""

from .formatter import OutputFormatter

__all__ = ["OutputFormatter"]
