"""Conversion Bot: embeddable AI sales/support chatbot backend."""

__version__ = "0.1.0"
