"""Wingman: local-first assistant with document retrieval and tool calling."""

__version__ = "0.1.0"
