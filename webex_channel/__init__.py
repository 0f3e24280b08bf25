"""Webex channel plugin for Conversa."""

__version__ = "1.0.0"
