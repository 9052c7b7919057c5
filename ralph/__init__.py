"""File-based agent loop that works through PRD user stories one at a time."""

__version__ = "0.1.0"
__all__ = ["__version__"]