"""Discord tools for AI agents with session-bound channel resolution."""

__version__ = "0.1.0"
