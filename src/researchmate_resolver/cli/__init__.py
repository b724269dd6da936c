"""
Command-line entry points for the ResearchMate resolver.
"""

from .main import app

__all__ = ["app"]
