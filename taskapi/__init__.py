"""Task management REST API with in-memory storage and a stress-testing tool."""

__version__ = "1.0.0"