"""Chat-driven remote command agent."""

__version__ = "0.1.0"
